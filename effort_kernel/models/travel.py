"""
Module: effort_kernel.models.travel
Responsibility: ORM persistence for per-day travel charges and for the
    administrative locks on a person's project-month.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One TravelCharge per (liquidation, project, day).
    - Only charges whose status is the configured confirmed status count
      towards a project's travel floor.
    - A ProjectMonthLock with is_locked=True freezes every effort cell of
      that person in that project and month.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from effort_kernel.db.base import TrackedBase, UUIDString


class TravelCharge(TrackedBase):
    """One travel day of a liquidation charged to a project."""

    __tablename__ = "travel_charges"

    __table_args__ = (
        UniqueConstraint("liquidation_id", "project_id", "day", name="uq_travel_day"),
        Index("idx_travel_person_day", "person_id", "day"),
    )

    liquidation_id: Mapped[str] = mapped_column(String(32), nullable=False)

    person_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("projects.id"),
        nullable=False,
    )

    day: Mapped[date] = mapped_column(Date, nullable=False)

    # PM charged for this day
    pms: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False)

    def __repr__(self) -> str:
        return f"<TravelCharge {self.liquidation_id} {self.day}: {self.pms} ({self.status})>"


class ProjectMonthLock(TrackedBase):
    """Administrative lock on a person's effort in a project for one month."""

    __tablename__ = "project_month_locks"

    __table_args__ = (
        Index("idx_lock_person_period", "person_id", "year", "month"),
    )

    person_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("projects.id"),
        nullable=False,
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)

    month: Mapped[int] = mapped_column(Integer, nullable=False)

    is_locked: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        state = "locked" if self.is_locked else "unlocked"
        return f"<ProjectMonthLock {self.project_id} {self.year}-{self.month:02d} {state}>"
