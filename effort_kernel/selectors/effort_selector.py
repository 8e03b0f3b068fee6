"""
Module: effort_kernel.selectors.effort_selector
Responsibility: Read-only queries over declared monthly effort: the effort
    cells of a person-month, assigned-vs-budget totals per month, and the
    people and months touched by a work package.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and selectors/base.py.  MUST NOT import from services/ or outer
    layers.

Invariants enforced:
    - Only work packages active in the month (start_date <= last day and
      end_date >= first day) contribute effort.
    - Effort cells come back in a stable order (project, work package,
      assignment id) so resolution is reproducible across runs.

Failure modes:
    - WorkPackageNotFoundError when an assignment references a work package
      that does not exist.
    - InvalidEffortValueError when a stored effort value is negative.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.orm import Session

from effort_kernel.domain.dtos import AssignmentSnapshot, MonthlyLoad
from effort_kernel.domain.values import (
    ONE_PM,
    ZERO,
    PersonMonth,
    month_range,
    sum_effort,
)
from effort_kernel.exceptions import InvalidEffortValueError, WorkPackageNotFoundError
from effort_kernel.logging_config import get_logger
from effort_kernel.models.effort import MonthlyBudget, MonthlyEffort
from effort_kernel.models.project import WorkPackage, WorkPackageAssignment
from effort_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.effort")


@dataclass(frozen=True)
class EffortRow:
    """One effort cell joined with its work package dates."""

    effort_id: UUID
    assignment_id: UUID
    work_package_id: UUID
    project_id: UUID
    month: date
    value: Decimal


class EffortSelector(BaseSelector[MonthlyEffort]):
    """
    Selector for monthly effort queries.

    Contract:
        Returns AssignmentSnapshot / MonthlyLoad DTOs.  The snapshot's
        ``assignment_id`` is the MonthlyEffort row id, the cell that overload
        resolution rewrites.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def assignments_for_person_month(
        self,
        person_month: PersonMonth,
        for_update: bool = False,
    ) -> list[AssignmentSnapshot]:
        """
        Effort cells of the person whose work package is active in the month.

        Args:
            person_month: Person and month to load.
            for_update: Lock the effort rows (SELECT ... FOR UPDATE) for the
                rest of the caller's transaction.

        Raises:
            WorkPackageNotFoundError: If an assignment's work package is missing.
            InvalidEffortValueError: If a stored value is negative.
        """
        first_day, last_day = person_month.first_day, person_month.last_day

        query = (
            select(MonthlyEffort, WorkPackageAssignment.work_package_id, WorkPackage)
            .join(
                WorkPackageAssignment,
                MonthlyEffort.assignment_id == WorkPackageAssignment.id,
            )
            .outerjoin(
                WorkPackage,
                WorkPackageAssignment.work_package_id == WorkPackage.id,
            )
            .where(
                WorkPackageAssignment.person_id == person_month.person_id,
                MonthlyEffort.month == first_day,
                or_(
                    WorkPackage.id.is_(None),
                    and_(
                        WorkPackage.start_date <= last_day,
                        WorkPackage.end_date >= first_day,
                    ),
                ),
            )
            .order_by(WorkPackage.project_id, WorkPackage.name, MonthlyEffort.id)
        )
        if for_update:
            query = query.with_for_update(of=MonthlyEffort)

        snapshots: list[AssignmentSnapshot] = []
        for effort, work_package_id, work_package in self.session.execute(query).all():
            if work_package is None:
                raise WorkPackageNotFoundError(str(work_package_id), str(effort.assignment_id))
            if effort.value < ZERO:
                raise InvalidEffortValueError(
                    f"effort {effort.id}", effort.value, "stored value is negative",
                )
            snapshots.append(
                AssignmentSnapshot(
                    assignment_id=effort.id,
                    project_id=work_package.project_id,
                    value=effort.value,
                    work_package_id=work_package.id,
                )
            )

        logger.debug("effort_cells_loaded", extra={
            "person_id": str(person_month.person_id),
            "period": person_month.label,
            "cell_count": len(snapshots),
            "for_update": for_update,
        })
        return snapshots

    def effort_rows_between(
        self,
        person_id: UUID,
        start: date,
        end: date,
    ) -> list[EffortRow]:
        """Active effort cells of a person for every month in [start, end]."""
        months = month_range(start, end)
        if not months:
            return []

        query = (
            select(MonthlyEffort, WorkPackage)
            .join(
                WorkPackageAssignment,
                MonthlyEffort.assignment_id == WorkPackageAssignment.id,
            )
            .join(WorkPackage, WorkPackageAssignment.work_package_id == WorkPackage.id)
            .where(
                WorkPackageAssignment.person_id == person_id,
                MonthlyEffort.month >= months[0],
                MonthlyEffort.month <= months[-1],
            )
            .order_by(MonthlyEffort.month, MonthlyEffort.id)
        )

        rows: list[EffortRow] = []
        for effort, work_package in self.session.execute(query).all():
            key = PersonMonth.of(person_id, effort.month)
            if not work_package.is_active_between(key.first_day, key.last_day):
                continue
            rows.append(
                EffortRow(
                    effort_id=effort.id,
                    assignment_id=effort.assignment_id,
                    work_package_id=work_package.id,
                    project_id=work_package.project_id,
                    month=effort.month,
                    value=effort.value,
                )
            )
        return rows

    def monthly_totals(
        self,
        person_id: UUID,
        start: date,
        end: date,
        out_of_contract_budget: Decimal = ONE_PM,
    ) -> list[MonthlyLoad]:
        """
        Assigned effort against budget for every month in [start, end].

        Months without a budget row are left out; they cannot be classified.
        An out-of-contract budget row reports ``out_of_contract_budget``.
        """
        months = month_range(start, end)
        if not months:
            return []

        assigned: dict[date, list[Decimal]] = {}
        for row in self.effort_rows_between(person_id, start, end):
            assigned.setdefault(row.month, []).append(row.value)

        budgets = {
            budget.month: budget
            for budget in self.session.scalars(
                select(MonthlyBudget).where(
                    MonthlyBudget.person_id == person_id,
                    MonthlyBudget.month >= months[0],
                    MonthlyBudget.month <= months[-1],
                )
            )
        }

        loads: list[MonthlyLoad] = []
        for first_day in months:
            budget = budgets.get(first_day)
            if budget is None:
                logger.debug("monthly_budget_missing", extra={
                    "person_id": str(person_id),
                    "period": f"{first_day:%Y-%m}",
                })
                continue
            loads.append(
                MonthlyLoad(
                    person_month=PersonMonth.of(person_id, first_day),
                    assigned=sum_effort(assigned.get(first_day, [])),
                    budget=(
                        out_of_contract_budget
                        if budget.is_out_of_contract
                        else budget.value
                    ),
                )
            )
        return loads

    def people_on_work_package(self, work_package_id: UUID) -> list[UUID]:
        """Distinct people assigned to the work package, in a stable order."""
        query = (
            select(WorkPackageAssignment.person_id)
            .where(WorkPackageAssignment.work_package_id == work_package_id)
            .distinct()
        )
        return sorted(self.session.scalars(query), key=str)

    def work_package_months(self, work_package_id: UUID) -> list[date]:
        """
        First day of every month the work package is active in.

        Raises:
            WorkPackageNotFoundError: If the work package does not exist.
        """
        work_package = self.session.get(WorkPackage, work_package_id)
        if work_package is None:
            raise WorkPackageNotFoundError(str(work_package_id))
        return month_range(work_package.start_date, work_package.end_date)
