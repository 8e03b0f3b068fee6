"""EffortLedger -- read/write access to the effort data of one person-month.

The overload engines never touch persistence.  The service loads everything
through an ``EffortLedger`` and hands the final batch back to it.
``SqlEffortLedger`` (effort_kernel.services.sql_ledger) is the database
adapter; ``InMemoryEffortLedger`` keeps the same contract over plain dicts so
the whole resolution can run without a database.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Protocol, runtime_checkable

from effort_kernel.domain.dtos import AssignmentSnapshot, ValueUpdate
from effort_kernel.domain.values import (
    ONE_PM,
    EntityId,
    PersonMonth,
    sum_effort,
    to_effort,
)
from effort_kernel.exceptions import (
    AssignmentNotFoundError,
    MonthlyBudgetNotFoundError,
)
from effort_kernel.logging_config import get_logger

logger = get_logger("domain.ledger")


@runtime_checkable
class EffortLedger(Protocol):
    """Protocol for the persistence collaborator of overload resolution.

    Implementations: SqlEffortLedger (database), InMemoryEffortLedger (dicts).
    """

    def get_monthly_budget(self, person_id: EntityId, year: int, month: int) -> Decimal:
        """Available PM for the person-month.

        Raises:
            MonthlyBudgetNotFoundError: When no budget is recorded.
        """
        ...

    def get_assignments_for_person_month(
        self, person_id: EntityId, year: int, month: int,
    ) -> list[AssignmentSnapshot]:
        """Effort cells whose work package is active in the month."""
        ...

    def get_confirmed_travel_floor(
        self, person_id: EntityId, project_id: EntityId, year: int, month: int,
    ) -> Decimal:
        """Sum of confirmed travel PM charged to the project in the month."""
        ...

    def is_locked(
        self, person_id: EntityId, project_id: EntityId, year: int, month: int,
    ) -> bool:
        """True when a lock record freezes the project for the person-month."""
        ...

    def persist_assignment_values(self, updates: Sequence[ValueUpdate]) -> None:
        """Write the batch atomically.

        Raises:
            AssignmentNotFoundError: When an update names an unknown assignment.
        """
        ...


@dataclass(frozen=True)
class TravelChargeRecord:
    """One day of a travel liquidation charged to a project."""

    person_id: EntityId
    project_id: EntityId
    day: date
    pms: Decimal
    status: str = "Confirmed"


class InMemoryEffortLedger:
    """EffortLedger over plain dicts.

    Builder methods (``set_budget``, ``add_assignment``, ``add_travel_charge``,
    ``lock``) populate the ledger; the protocol methods read and write it the
    same way the database adapter does.
    """

    def __init__(
        self,
        confirmed_status: str = "Confirmed",
        out_of_contract_budget: Decimal = ONE_PM,
    ):
        self._confirmed_status = confirmed_status.lower()
        self._out_of_contract_budget = out_of_contract_budget
        self._budgets: dict[PersonMonth, tuple[Decimal, bool]] = {}
        self._assignments: dict[PersonMonth, list[AssignmentSnapshot]] = {}
        self._owner: dict[EntityId, PersonMonth] = {}
        self._travel: list[TravelChargeRecord] = []
        self._locks: dict[tuple[EntityId, EntityId, int, int], bool] = {}
        self.persist_calls = 0

    # -------------------------------------------------------------------------
    # Builders
    # -------------------------------------------------------------------------

    def set_budget(
        self,
        person_id: EntityId,
        year: int,
        month: int,
        value: Decimal | str | int,
        out_of_contract: bool = False,
    ) -> None:
        self._budgets[PersonMonth(person_id, year, month)] = (
            to_effort(value), out_of_contract,
        )

    def add_assignment(
        self,
        person_id: EntityId,
        year: int,
        month: int,
        assignment_id: EntityId,
        project_id: EntityId,
        value: Decimal | str | int,
        work_package_id: EntityId | None = None,
    ) -> AssignmentSnapshot:
        key = PersonMonth(person_id, year, month)
        snapshot = AssignmentSnapshot(
            assignment_id=assignment_id,
            project_id=project_id,
            value=to_effort(value),
            work_package_id=work_package_id,
        )
        self._assignments.setdefault(key, []).append(snapshot)
        self._owner[assignment_id] = key
        return snapshot

    def add_travel_charge(
        self,
        person_id: EntityId,
        project_id: EntityId,
        day: date,
        pms: Decimal | str | int,
        status: str = "Confirmed",
    ) -> None:
        self._travel.append(
            TravelChargeRecord(
                person_id=person_id,
                project_id=project_id,
                day=day,
                pms=to_effort(pms),
                status=status,
            )
        )

    def lock(
        self,
        person_id: EntityId,
        project_id: EntityId,
        year: int,
        month: int,
        locked: bool = True,
    ) -> None:
        self._locks[(person_id, project_id, year, month)] = locked

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    def value_of(self, assignment_id: EntityId) -> Decimal:
        key = self._owner.get(assignment_id)
        if key is None:
            raise AssignmentNotFoundError(str(assignment_id))
        for snapshot in self._assignments[key]:
            if snapshot.assignment_id == assignment_id:
                return snapshot.value
        raise AssignmentNotFoundError(str(assignment_id))

    def values_for(
        self, person_id: EntityId, year: int, month: int,
    ) -> dict[EntityId, Decimal]:
        key = PersonMonth(person_id, year, month)
        return {s.assignment_id: s.value for s in self._assignments.get(key, [])}

    def total_for(self, person_id: EntityId, year: int, month: int) -> Decimal:
        return sum_effort(self.values_for(person_id, year, month).values())

    # -------------------------------------------------------------------------
    # EffortLedger
    # -------------------------------------------------------------------------

    def get_monthly_budget(self, person_id: EntityId, year: int, month: int) -> Decimal:
        key = PersonMonth(person_id, year, month)
        if key not in self._budgets:
            raise MonthlyBudgetNotFoundError(str(person_id), key.label)
        value, out_of_contract = self._budgets[key]
        if out_of_contract:
            logger.info("budget_out_of_contract_substituted", extra={
                "person_id": str(person_id),
                "period": key.label,
                "recorded_budget": str(value),
                "substituted_budget": str(self._out_of_contract_budget),
            })
            return self._out_of_contract_budget
        return value

    def get_assignments_for_person_month(
        self, person_id: EntityId, year: int, month: int,
    ) -> list[AssignmentSnapshot]:
        return list(self._assignments.get(PersonMonth(person_id, year, month), []))

    def get_confirmed_travel_floor(
        self, person_id: EntityId, project_id: EntityId, year: int, month: int,
    ) -> Decimal:
        key = PersonMonth(person_id, year, month)
        return sum_effort(
            charge.pms
            for charge in self._travel
            if charge.person_id == person_id
            and charge.project_id == project_id
            and key.contains(charge.day)
            and charge.status.lower() == self._confirmed_status
        )

    def is_locked(
        self, person_id: EntityId, project_id: EntityId, year: int, month: int,
    ) -> bool:
        return self._locks.get((person_id, project_id, year, month), False)

    def persist_assignment_values(self, updates: Sequence[ValueUpdate]) -> None:
        # Validate the whole batch before writing anything
        for update in updates:
            if update.assignment_id not in self._owner:
                raise AssignmentNotFoundError(str(update.assignment_id))

        new_values = {u.assignment_id: u.new_value for u in updates}
        for key, snapshots in self._assignments.items():
            self._assignments[key] = [
                AssignmentSnapshot(
                    assignment_id=s.assignment_id,
                    project_id=s.project_id,
                    value=new_values[s.assignment_id],
                    work_package_id=s.work_package_id,
                )
                if s.assignment_id in new_values
                else s
                for s in snapshots
            ]
        self.persist_calls += 1
        logger.debug("ledger_batch_persisted", extra={
            "update_count": len(updates),
        })
