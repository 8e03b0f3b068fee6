"""
Module: effort_engines.overload
Responsibility:
    Decide how a person's over-allocated monthly effort shrinks back to the
    monthly budget: classify the month, run the two feasibility checks, and
    compute per-group and per-assignment targets by water-filling.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import effort_kernel/domain, effort_kernel/exceptions and
    sibling engine modules.

Invariants enforced:
    - No overload (current total <= budget) leaves every value untouched.
    - Locked groups are never given a target.
    - Every unlocked group ends at or above its travel floor.
    - Unlocked group targets sum exactly to budget - locked total (before
      rounding).
    - Water-filling terminates in at most one iteration per unlocked group:
      every iteration either fixes at least one group at its floor or stops.

Failure modes:
    - InvalidEffortValueError for a negative budget.
    - Infeasible months are NOT errors; they come back as a plan whose
      status is LOCKED_INFEASIBLE or TRAVEL_INFEASIBLE.

Usage:
    from effort_engines.allocation_group import build_groups
    from effort_engines.overload import OverloadResolver

    groups = build_groups(snapshots, travel_floors, locked_projects)
    plan = OverloadResolver().resolve(groups=groups, budget=Decimal("0.80"))
    if plan.requires_reallocation:
        ...
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from effort_engines.allocation_group import AllocationGroup, GroupAllocation
from effort_engines.tracer import traced_engine
from effort_kernel.domain.dtos import ResolutionStatus
from effort_kernel.domain.values import ZERO, EntityId, sum_effort
from effort_kernel.exceptions import InvalidEffortValueError
from effort_kernel.logging_config import get_logger

logger = get_logger("engines.overload")


@dataclass(frozen=True)
class OverloadPlan:
    """
    Outcome of classification and, when needed, water-filling.

    Contract:
        Frozen; ``allocations`` is empty unless ``status`` is RESOLVED.
    Guarantees:
        - ``scalable_budget == budget - locked_total``.
        - For RESOLVED plans, sum of allocation targets == scalable_budget.
    """

    status: ResolutionStatus
    budget: Decimal
    total_current: Decimal
    locked_total: Decimal
    floor_total: Decimal
    allocations: tuple[GroupAllocation, ...] = ()
    iterations: int = 0
    fixed_project_ids: frozenset = field(default_factory=frozenset)

    @property
    def scalable_budget(self) -> Decimal:
        return self.budget - self.locked_total

    @property
    def requires_reallocation(self) -> bool:
        return self.status == ResolutionStatus.RESOLVED

    @property
    def member_targets(self) -> dict[EntityId, Decimal]:
        """Unrounded target of every unlocked assignment."""
        return {
            aid: target
            for allocation in self.allocations
            for aid, target in allocation.member_targets
        }


class OverloadResolver:
    """
    Classify a person-month and compute water-filled targets.

    Contract:
        Pure and deterministic for a given (groups, budget) input.
    Guarantees:
        - Classification order: no overload, then locked infeasible, then
          travel infeasible, then resolved.
        - All groups breaching their floor in an iteration are fixed in that
          same iteration.
    Non-goals:
        - Does not round; see RoundingReconciler.
        - Does not read or write the ledger.
    """

    @traced_engine("overload", "1.0", fingerprint_fields=("budget",))
    def resolve(
        self,
        groups: Sequence[AllocationGroup],
        budget: Decimal,
    ) -> OverloadPlan:
        """Classify the month and, when feasible, water-fill it.

        Args:
            groups: Every AllocationGroup of the person-month.
            budget: Available PM for the month.

        Returns:
            OverloadPlan describing the terminal state and the targets.

        Raises:
            InvalidEffortValueError: If ``budget`` is negative.
        """
        if budget < ZERO:
            raise InvalidEffortValueError("monthly budget", budget, "must not be negative")

        total_current = sum_effort(g.current_total for g in groups)
        locked_total = sum_effort(g.current_total for g in groups if g.is_locked)
        floor_total = sum_effort(g.floor for g in groups if not g.is_locked)

        logger.info("overload_classification", extra={
            "budget": str(budget),
            "total_current": str(total_current),
            "locked_total": str(locked_total),
            "floor_total": str(floor_total),
            "group_count": len(groups),
        })

        def _exit(status: ResolutionStatus) -> OverloadPlan:
            return OverloadPlan(
                status=status,
                budget=budget,
                total_current=total_current,
                locked_total=locked_total,
                floor_total=floor_total,
            )

        if total_current <= budget:
            return _exit(ResolutionStatus.NO_OVERLOAD)

        if locked_total > budget:
            logger.warning("overload_locked_infeasible", extra={
                "budget": str(budget),
                "locked_total": str(locked_total),
            })
            return _exit(ResolutionStatus.LOCKED_INFEASIBLE)

        if locked_total + floor_total > budget:
            logger.warning("overload_travel_infeasible", extra={
                "budget": str(budget),
                "locked_total": str(locked_total),
                "floor_total": str(floor_total),
            })
            return _exit(ResolutionStatus.TRAVEL_INFEASIBLE)

        unlocked = [g for g in groups if not g.is_locked]
        group_targets, fixed, iterations = self.water_fill(
            unlocked, budget - locked_total,
        )

        allocations = tuple(
            GroupAllocation(
                project_id=g.project_id,
                target=group_targets[g.project_id],
                floor=g.floor,
                floor_fixed=g.project_id in fixed,
                member_targets=tuple(
                    g.distribute(group_targets[g.project_id]).items()
                ),
            )
            for g in unlocked
        )

        return OverloadPlan(
            status=ResolutionStatus.RESOLVED,
            budget=budget,
            total_current=total_current,
            locked_total=locked_total,
            floor_total=floor_total,
            allocations=allocations,
            iterations=iterations,
            fixed_project_ids=frozenset(fixed),
        )

    def water_fill(
        self,
        groups: Sequence[AllocationGroup],
        scalable_budget: Decimal,
    ) -> tuple[dict[EntityId, Decimal], set[EntityId], int]:
        """Scale unlocked group totals to ``scalable_budget`` above floors.

        Preconditions:
            - Every group is unlocked.
            - Sum of floors <= scalable_budget.

        Returns:
            (target per project, projects fixed at their floor, iterations)
        """
        fixed: dict[EntityId, Decimal] = {}
        active = list(groups)
        tentative: dict[EntityId, Decimal] = {}
        iterations = 0

        while active:
            iterations += 1
            remaining = scalable_budget - sum_effort(fixed.values())
            active_total = sum_effort(g.current_total for g in active)

            if active_total == ZERO:
                # Degenerate: nothing left to scale
                tentative = {g.project_id: ZERO for g in active}
                break

            ratio = remaining / active_total
            tentative = {g.project_id: g.current_total * ratio for g in active}
            breaching = [g for g in active if tentative[g.project_id] < g.floor]

            logger.debug("overload_water_fill_iteration", extra={
                "iteration": iterations,
                "remaining": str(remaining),
                "active_total": str(active_total),
                "ratio": str(ratio),
                "breaching": [str(g.project_id) for g in breaching],
            })

            if not breaching:
                break

            for g in breaching:
                fixed[g.project_id] = g.floor
            breaching_ids = {g.project_id for g in breaching}
            active = [g for g in active if g.project_id not in breaching_ids]
            tentative = {}

        targets = {**tentative, **fixed}
        return (
            {g.project_id: targets.get(g.project_id, ZERO) for g in groups},
            set(fixed),
            iterations,
        )
