"""
Module: effort_kernel.models.effort
Responsibility: ORM persistence for declared monthly effort and the monthly
    PM budget it is measured against.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One MonthlyEffort row per (assignment, month); ``month`` is always the
      first day of the month.
    - Effort values are stored as Numeric(3, 2): two decimals, 0.00-9.99.
    - One MonthlyBudget row per (person, month).

Audit relevance:
    Overload resolution overwrites MonthlyEffort.value in a single batch and
    nothing else; updated_at records when.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from effort_kernel.db.base import TrackedBase, UUIDString


class MonthlyEffort(TrackedBase):
    """
    Effort a person declared against one work package for one month.

    Contract:
        This is the "effort assignment" cell that overload resolution
        reads and rewrites.  Its id is the assignment id the engines see.
    """

    __tablename__ = "monthly_efforts"

    __table_args__ = (
        UniqueConstraint("assignment_id", "month", name="uq_effort_assignment_month"),
        Index("idx_effort_month", "month"),
    )

    assignment_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("work_package_assignments.id"),
        nullable=False,
    )

    # First day of the month
    month: Mapped[date] = mapped_column(Date, nullable=False)

    value: Mapped[Decimal] = mapped_column(
        Numeric(3, 2),
        nullable=False,
        default=Decimal("0.00"),
    )

    def __repr__(self) -> str:
        return f"<MonthlyEffort {self.assignment_id} {self.month:%Y-%m}: {self.value}>"


class MonthlyBudget(TrackedBase):
    """
    Available PM for a person in a month.

    Contract:
        Written by the external calendar service (working days, leave,
        dedication).  ``is_out_of_contract`` is set by the same service; the
        ledger then substitutes the configured out-of-contract budget.
    """

    __tablename__ = "monthly_budgets"

    __table_args__ = (
        UniqueConstraint("person_id", "month", name="uq_budget_person_month"),
    )

    person_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # First day of the month
    month: Mapped[date] = mapped_column(Date, nullable=False)

    value: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)

    is_out_of_contract: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<MonthlyBudget {self.person_id} {self.month:%Y-%m}: {self.value}>"
