"""
Module: effort_engines.rounding
Responsibility:
    Round water-filled targets to ledger precision while keeping the rounded
    total equal to the scalable budget.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import effort_kernel/domain, effort_kernel/exceptions and
    sibling engine modules.

Invariants enforced:
    - Every value is rounded ROUND_HALF_UP to the configured precision.
    - Within a group, rounded members sum to the group's rounded target.
    - The global residual lands on the largest assignment of a group that is
      not fixed at its floor.  It spills to the next-largest only when the
      first one would go below zero or take its group below its floor.
    - No value is ever negative.

Failure modes:
    - Whatever residual cannot be placed is reported on the outcome.  With
      ``strict=True`` it raises RoundingResidualUnresolvedError instead.

Usage:
    reconciler = RoundingReconciler(precision=Decimal("0.01"))
    outcome = reconciler.reconcile(
        allocations=plan.allocations,
        target_total=plan.scalable_budget,
    )
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from effort_engines.allocation_group import GroupAllocation
from effort_engines.tracer import traced_engine
from effort_kernel.domain.values import (
    DEFAULT_PRECISION,
    ZERO,
    EntityId,
    quantize_effort,
    sum_effort,
)
from effort_kernel.exceptions import RoundingResidualUnresolvedError
from effort_kernel.logging_config import get_logger

logger = get_logger("engines.rounding")


@dataclass(frozen=True)
class RoundingOutcome:
    """
    Rounded values for every unlocked assignment.

    Guarantees:
        - ``values`` are quantized and non-negative.
        - ``sum(values) + residual_unresolved == target_total`` (quantized).
    """

    values: dict[EntityId, Decimal]
    target_total: Decimal
    residual_unresolved: Decimal = ZERO
    adjusted_ids: tuple[EntityId, ...] = ()

    @property
    def total(self) -> Decimal:
        return sum_effort(self.values.values())

    @property
    def is_balanced(self) -> bool:
        return self.residual_unresolved == ZERO


class RoundingReconciler:
    """
    Largest-value residual correction over water-filled targets.

    Contract:
        Deterministic: ties between equal values go to the assignment that
        came first in ledger order.
    Non-goals:
        - Does not touch locked assignments; they never reach this engine.
    """

    def __init__(self, precision: Decimal = DEFAULT_PRECISION, strict: bool = False):
        if precision <= ZERO:
            raise ValueError(f"Precision must be positive, got {precision}")
        self.precision = precision
        self.strict = strict

    def _q(self, value: Decimal) -> Decimal:
        return quantize_effort(value, self.precision)

    @traced_engine("rounding", "1.0", fingerprint_fields=("target_total",))
    def reconcile(
        self,
        allocations: Sequence[GroupAllocation],
        target_total: Decimal,
    ) -> RoundingOutcome:
        """Round member targets and correct the residual.

        Args:
            allocations: Water-filled groups with unrounded member targets.
            target_total: Total the rounded values must reach (the scalable
                budget).

        Returns:
            RoundingOutcome with the final values.

        Raises:
            RoundingResidualUnresolvedError: In strict mode, when a residual
                remains after every adjustable assignment was tried.
        """
        target_total = self._q(target_total)
        values: dict[EntityId, Decimal] = {}
        group_of: dict[EntityId, GroupAllocation] = {}

        for allocation in allocations:
            values.update(self._round_group(allocation))
            for aid in allocation.assignment_ids:
                group_of[aid] = allocation

        residual = target_total - sum_effort(values.values())
        adjusted: list[EntityId] = []

        if residual != ZERO:
            candidates = [
                aid for aid in values
                if not group_of[aid].floor_fixed
            ]
            # Stable sort keeps ledger order between equal values
            candidates.sort(key=lambda aid: values[aid], reverse=True)

            for aid in candidates:
                if residual == ZERO:
                    break
                if residual > ZERO:
                    step = residual
                else:
                    allocation = group_of[aid]
                    group_total = sum_effort(values[a] for a in allocation.assignment_ids)
                    room = min(values[aid], group_total - self._q(allocation.floor))
                    step = -min(-residual, max(room, ZERO))
                if step == ZERO:
                    continue
                values[aid] += step
                residual -= step
                adjusted.append(aid)

            logger.debug("rounding_residual_applied", extra={
                "adjusted_ids": [str(a) for a in adjusted],
                "residual_left": str(residual),
            })

        if residual != ZERO:
            logger.warning("rounding_residual_unresolved", extra={
                "residual": str(residual),
                "target_total": str(target_total),
            })
            if self.strict:
                raise RoundingResidualUnresolvedError(residual, target_total)

        return RoundingOutcome(
            values=values,
            target_total=target_total,
            residual_unresolved=residual,
            adjusted_ids=tuple(adjusted),
        )

    def _round_group(self, allocation: GroupAllocation) -> dict[EntityId, Decimal]:
        """Round one group's members so they sum to its rounded target."""
        raw = dict(allocation.member_targets)
        rounded = {aid: max(self._q(target), ZERO) for aid, target in raw.items()}
        diff = self._q(allocation.target) - sum_effort(rounded.values())

        order = sorted(raw, key=lambda aid: raw[aid], reverse=True)
        for aid in order:
            if diff == ZERO:
                break
            step = max(diff, -rounded[aid])
            rounded[aid] += step
            diff -= step

        return rounded
