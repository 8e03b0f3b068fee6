"""
SqlEffortLedger -- EffortLedger over the SQLAlchemy models.

Responsibility:
    Database adapter behind the ``EffortLedger`` protocol: reads the budget,
    the active effort cells, confirmed travel and lock flags of one
    person-month, and writes the final batch of effort values.

Architecture position:
    Kernel > Services -- imperative shell.  Reads through EffortSelector,
    writes MonthlyEffort rows.  Never imported by the engines.

Invariants enforced:
    - Effort rows are read FOR UPDATE, so a second resolution of the same
      person-month on PostgreSQL waits for the first transaction to end.
    - Confirmed travel is matched case-insensitively against the configured
      status.
    - An out-of-contract budget row yields the configured substitute budget.
    - The whole batch is validated before any row changes; the write is a
      flush inside the caller's transaction, never a commit.

Failure modes:
    - MonthlyBudgetNotFoundError: no budget row for the person-month.
    - WorkPackageNotFoundError / InvalidEffortValueError: inconsistent
      effort rows (raised by the selector).
    - AssignmentNotFoundError: the batch names an unknown effort row.
    - InvalidEffortValueError: a new value is negative or above max_value.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from effort_kernel.domain.dtos import AssignmentSnapshot, ValueUpdate
from effort_kernel.domain.values import ONE_PM, ZERO, PersonMonth, to_effort
from effort_kernel.exceptions import (
    AssignmentNotFoundError,
    InvalidEffortValueError,
    MonthlyBudgetNotFoundError,
)
from effort_kernel.logging_config import get_logger
from effort_kernel.models.effort import MonthlyBudget, MonthlyEffort
from effort_kernel.models.travel import ProjectMonthLock, TravelCharge
from effort_kernel.selectors.effort_selector import EffortSelector
from effort_kernel.services.base import BaseService

logger = get_logger("services.sql_ledger")


class SqlEffortLedger(BaseService[MonthlyEffort]):
    """
    EffortLedger backed by a SQLAlchemy session.

    Contract:
        The caller owns the session and its transaction.  Assignment ids are
        MonthlyEffort row ids.
    """

    def __init__(
        self,
        session: Session,
        confirmed_status: str = "Confirmed",
        out_of_contract_budget: Decimal = ONE_PM,
        max_value: Decimal = Decimal("9.99"),
    ):
        super().__init__(session)
        self._selector = EffortSelector(session)
        self._confirmed_status = confirmed_status.lower()
        self._out_of_contract_budget = out_of_contract_budget
        self._max_value = max_value

    def get_monthly_budget(self, person_id: UUID, year: int, month: int) -> Decimal:
        key = PersonMonth(person_id, year, month)
        budget = self.session.execute(
            select(MonthlyBudget).where(
                MonthlyBudget.person_id == person_id,
                MonthlyBudget.month == key.first_day,
            )
        ).scalar_one_or_none()

        if budget is None:
            raise MonthlyBudgetNotFoundError(str(person_id), key.label)

        if budget.is_out_of_contract:
            logger.info("budget_out_of_contract_substituted", extra={
                "person_id": str(person_id),
                "period": key.label,
                "recorded_budget": str(budget.value),
                "substituted_budget": str(self._out_of_contract_budget),
            })
            return self._out_of_contract_budget
        return budget.value

    def get_assignments_for_person_month(
        self, person_id: UUID, year: int, month: int,
    ) -> list[AssignmentSnapshot]:
        return self._selector.assignments_for_person_month(
            PersonMonth(person_id, year, month),
            for_update=True,
        )

    def get_confirmed_travel_floor(
        self, person_id: UUID, project_id: UUID, year: int, month: int,
    ) -> Decimal:
        key = PersonMonth(person_id, year, month)
        total = self.session.execute(
            select(func.coalesce(func.sum(TravelCharge.pms), 0)).where(
                TravelCharge.person_id == person_id,
                TravelCharge.project_id == project_id,
                TravelCharge.day >= key.first_day,
                TravelCharge.day <= key.last_day,
                func.lower(TravelCharge.status) == self._confirmed_status,
            )
        ).scalar_one()
        return to_effort(str(total))

    def is_locked(
        self, person_id: UUID, project_id: UUID, year: int, month: int,
    ) -> bool:
        lock_id = self.session.execute(
            select(ProjectMonthLock.id).where(
                ProjectMonthLock.person_id == person_id,
                ProjectMonthLock.project_id == project_id,
                ProjectMonthLock.year == year,
                ProjectMonthLock.month == month,
                ProjectMonthLock.is_locked.is_(True),
            ).limit(1)
        ).scalar_one_or_none()
        return lock_id is not None

    def persist_assignment_values(self, updates: Sequence[ValueUpdate]) -> None:
        if not updates:
            return

        ids = [u.assignment_id for u in updates]
        rows = {
            row.id: row
            for row in self.session.scalars(
                select(MonthlyEffort).where(MonthlyEffort.id.in_(ids))
            )
        }

        # Validate the whole batch before touching any row
        for update in updates:
            if update.assignment_id not in rows:
                raise AssignmentNotFoundError(str(update.assignment_id))
            if update.new_value < ZERO or update.new_value > self._max_value:
                raise InvalidEffortValueError(
                    f"effort {update.assignment_id}",
                    update.new_value,
                    f"must be within 0 and {self._max_value}",
                )

        for update in updates:
            rows[update.assignment_id].value = update.new_value

        self.session.flush()
        logger.info("ledger_batch_persisted", extra={
            "update_count": len(updates),
        })
