"""
Module: effort_engines.allocation_group
Responsibility:
    Group a person's effort cells for one month by project and expose the
    per-group quantities overload resolution works with: current total,
    travel floor and lock status.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import effort_kernel/domain and effort_kernel/exceptions.

Invariants enforced:
    - One group per distinct project, in order of first appearance.
    - An assignment id belongs to exactly one group.
    - A locked group never distributes a new target; its members are frozen.
    - ``floor`` is the travel floor for unlocked groups and zero for locked
      ones, whose value is frozen regardless of travel.

Failure modes:
    - DuplicateAssignmentError when the same assignment id is loaded twice.
    - ValueError when a locked group is asked to distribute a target, or a
      negative travel floor is supplied.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal

from effort_kernel.domain.dtos import AssignmentSnapshot
from effort_kernel.domain.values import ZERO, EntityId, sum_effort
from effort_kernel.exceptions import DuplicateAssignmentError


@dataclass(frozen=True)
class AllocationGroup:
    """
    All effort cells of one person in one project for one month.

    Contract:
        Frozen; rebuilt from the ledger on every resolution.
    Guarantees:
        - ``members`` keeps ledger order.
        - ``travel_floor`` is non-negative.
    """

    project_id: EntityId
    members: tuple[AssignmentSnapshot, ...]
    is_locked: bool = False
    travel_floor: Decimal = ZERO

    def __post_init__(self) -> None:
        if self.travel_floor < ZERO:
            raise ValueError(
                f"Travel floor for project {self.project_id} cannot be negative"
            )

    @property
    def current_total(self) -> Decimal:
        return sum_effort(m.value for m in self.members)

    @property
    def floor(self) -> Decimal:
        """Minimum total the group must keep; zero when locked."""
        if self.is_locked:
            return ZERO
        return self.travel_floor

    @property
    def has_travel(self) -> bool:
        return self.travel_floor > ZERO

    @property
    def assignment_ids(self) -> tuple[EntityId, ...]:
        return tuple(m.assignment_id for m in self.members)

    def distribute(self, target: Decimal) -> dict[EntityId, Decimal]:
        """Split ``target`` across the members, unrounded.

        Each member receives its share of the group's current total.  When
        the current total is zero the target is split evenly (all zero when
        the target itself is zero).

        Raises:
            ValueError: If the group is locked.
        """
        if self.is_locked:
            raise ValueError(
                f"Locked group {self.project_id} cannot receive a new target"
            )
        if not self.members:
            return {}

        current = self.current_total
        if current == ZERO:
            share = target / Decimal(len(self.members))
            return {m.assignment_id: share for m in self.members}

        return {
            m.assignment_id: m.value / current * target
            for m in self.members
        }


@dataclass(frozen=True)
class GroupAllocation:
    """
    Target decided for one unlocked group, with its members' raw targets.

    Contract:
        Output of the water-filling pass and input of rounding
        reconciliation.  ``member_targets`` is unrounded and keyed by
        assignment id in member order.
    """

    project_id: EntityId
    target: Decimal
    floor: Decimal
    floor_fixed: bool
    member_targets: tuple[tuple[EntityId, Decimal], ...]

    @property
    def assignment_ids(self) -> tuple[EntityId, ...]:
        return tuple(aid for aid, _ in self.member_targets)


def build_groups(
    snapshots: Sequence[AssignmentSnapshot],
    travel_floors: Mapping[EntityId, Decimal] | None = None,
    locked_projects: Collection[EntityId] = (),
) -> list[AllocationGroup]:
    """Group snapshots by project.

    Args:
        snapshots: Effort cells of one person-month, in ledger order.
        travel_floors: Confirmed travel PM per project; missing means zero.
        locked_projects: Projects locked for the person-month.

    Returns:
        One AllocationGroup per project, in order of first appearance.

    Raises:
        DuplicateAssignmentError: If an assignment id repeats.
    """
    travel_floors = travel_floors or {}
    seen: set[EntityId] = set()
    members: dict[EntityId, list[AssignmentSnapshot]] = {}

    for snapshot in snapshots:
        if snapshot.assignment_id in seen:
            raise DuplicateAssignmentError(str(snapshot.assignment_id))
        seen.add(snapshot.assignment_id)
        members.setdefault(snapshot.project_id, []).append(snapshot)

    return [
        AllocationGroup(
            project_id=project_id,
            members=tuple(group_members),
            is_locked=project_id in locked_projects,
            travel_floor=travel_floors.get(project_id, ZERO),
        )
        for project_id, group_members in members.items()
    ]
