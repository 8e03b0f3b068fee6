"""
DTOs -- Pure data transfer objects for overload resolution.

Responsibility:
    Defines the immutable structures that cross the boundary between the
    ledger, the engines and the callers: AssignmentSnapshot (read model of
    one effort cell), ValueUpdate (one element of the persisted batch),
    MonthlyLoad (assigned vs. available PM for one month) and
    ResolutionResult (the outcome handed back to controllers and jobs).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Free of ORM dependencies.  The service layer converts ORM rows into
    these DTOs before any engine sees them.

Invariants enforced:
    - AssignmentSnapshot values are non-negative Decimals.
    - ResolutionResult.success is True exactly for NO_OVERLOAD and RESOLVED.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from effort_kernel.domain.values import ZERO, EntityId, PersonMonth, to_effort

NO_OVERLOAD_MESSAGE = "No overload found."
LOCKED_INFEASIBLE_MESSAGE = (
    "Locked efforts exceed available PM. Overload cannot be resolved."
)
TRAVEL_INFEASIBLE_MESSAGE = (
    "Available PM is not enough to justify travel-related efforts."
)
RESOLVED_MESSAGE = "Overload resolved."


class ResolutionStatus(str, Enum):
    """Terminal state of one overload resolution.

    Contract: every invocation ends in exactly one of these states; there is
    no retry state.
    """

    NO_OVERLOAD = "no_overload"
    LOCKED_INFEASIBLE = "locked_infeasible"
    TRAVEL_INFEASIBLE = "travel_infeasible"
    RESOLVED = "resolved"

    @property
    def is_success(self) -> bool:
        return self in (ResolutionStatus.NO_OVERLOAD, ResolutionStatus.RESOLVED)

    @property
    def message(self) -> str:
        return _STATUS_MESSAGES[self]


_STATUS_MESSAGES = {
    ResolutionStatus.NO_OVERLOAD: NO_OVERLOAD_MESSAGE,
    ResolutionStatus.LOCKED_INFEASIBLE: LOCKED_INFEASIBLE_MESSAGE,
    ResolutionStatus.TRAVEL_INFEASIBLE: TRAVEL_INFEASIBLE_MESSAGE,
    ResolutionStatus.RESOLVED: RESOLVED_MESSAGE,
}


@dataclass(frozen=True)
class AssignmentSnapshot:
    """
    One effort cell: a (person, work package) pairing for one month.

    Contract:
        Frozen read model built by the ledger.  ``project_id`` decides the
        AllocationGroup the cell belongs to.
    Guarantees:
        - ``value`` is a non-negative Decimal.
    """

    assignment_id: EntityId
    project_id: EntityId
    value: Decimal
    work_package_id: EntityId | None = None

    def __post_init__(self) -> None:
        value = to_effort(self.value)
        if value < ZERO:
            raise ValueError(
                f"Assignment {self.assignment_id} has negative effort {value}"
            )
        object.__setattr__(self, "value", value)


@dataclass(frozen=True)
class ValueUpdate:
    """New value for one assignment, part of a single persisted batch."""

    assignment_id: EntityId
    new_value: Decimal


@dataclass(frozen=True)
class MonthlyLoad:
    """Assigned effort against the available budget for one person-month."""

    person_month: PersonMonth
    assigned: Decimal
    budget: Decimal

    @property
    def is_overloaded(self) -> bool:
        return self.assigned > self.budget

    @property
    def excess(self) -> Decimal:
        return max(self.assigned - self.budget, ZERO)


@dataclass(frozen=True)
class ResolutionResult:
    """
    Outcome of one ``adjust_monthly_overload`` call.

    Contract:
        Created once per invocation, never persisted.  ``success`` and
        ``message`` are what controllers show; ``updates`` is the batch that
        was written (empty on every early-exit path); ``notes`` carries
        non-fatal remarks such as an unresolved rounding residual.
    """

    success: bool
    message: str
    status: ResolutionStatus
    person_month: PersonMonth | None = None
    updates: tuple[ValueUpdate, ...] = ()
    notes: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_status(
        cls,
        status: ResolutionStatus,
        person_month: PersonMonth | None = None,
        updates: tuple[ValueUpdate, ...] = (),
        notes: tuple[str, ...] = (),
    ) -> ResolutionResult:
        return cls(
            success=status.is_success,
            message=status.message,
            status=status,
            person_month=person_month,
            updates=updates,
            notes=notes,
        )

    @property
    def changed(self) -> bool:
        return bool(self.updates)
