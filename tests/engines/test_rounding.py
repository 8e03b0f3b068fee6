"""
Tests for RoundingReconciler.

Covers:
- ROUND_HALF_UP to the configured precision
- Per-group reconciliation to the rounded group target
- Global residual placement, skipping floor-fixed groups
- Negative residual limited by zero and by group floors
- Unresolved residual reporting and strict mode
"""

from decimal import Decimal

import pytest

from effort_engines.allocation_group import GroupAllocation
from effort_engines.rounding import RoundingReconciler
from effort_kernel.exceptions import RoundingResidualUnresolvedError

THIRD = Decimal(1) / Decimal(3)


def allocation(project_id, members, target=None, floor="0", floor_fixed=False):
    member_targets = tuple((aid, Decimal(value)) for aid, value in members)
    if target is None:
        target = sum((v for _, v in member_targets), Decimal("0"))
    return GroupAllocation(
        project_id=project_id,
        target=Decimal(target),
        floor=Decimal(floor),
        floor_fixed=floor_fixed,
        member_targets=member_targets,
    )


class TestPrecision:
    """Tests for quantization."""

    def test_half_up(self):
        outcome = RoundingReconciler(precision=Decimal("0.1")).reconcile(
            allocations=[allocation("P1", [("a", "0.55")])],
            target_total=Decimal("0.55"),
        )

        assert outcome.values == {"a": Decimal("0.6")}
        assert outcome.target_total == Decimal("0.6")
        assert outcome.is_balanced

    def test_non_positive_precision_rejected(self):
        with pytest.raises(ValueError):
            RoundingReconciler(precision=Decimal("0"))


class TestGroupReconciliation:
    """Members of a group sum to the group's rounded target."""

    def test_group_diff_goes_to_largest_raw_target(self):
        outcome = RoundingReconciler().reconcile(
            allocations=[
                allocation("P1", [("a", "0.165"), ("b", "0.165"), ("c", "0.17")]),
            ],
            target_total=Decimal("0.50"),
        )

        assert outcome.values == {
            "a": Decimal("0.17"),
            "b": Decimal("0.17"),
            "c": Decimal("0.16"),
        }
        assert outcome.total == Decimal("0.50")
        assert outcome.adjusted_ids == ()

    def test_group_sum_matches_rounded_target(self):
        members = [("a", THIRD / 2), ("b", THIRD / 2)]
        outcome = RoundingReconciler().reconcile(
            allocations=[allocation("P1", members, target=THIRD)],
            target_total=THIRD,
        )

        assert outcome.total == Decimal("0.33")
        assert all(v >= Decimal("0") for v in outcome.values.values())


class TestResidual:
    """Global residual placement."""

    def test_positive_residual_to_first_largest(self):
        outcome = RoundingReconciler().reconcile(
            allocations=[
                allocation("P1", [("a", THIRD)]),
                allocation("P2", [("b", THIRD)]),
                allocation("P3", [("c", THIRD)]),
            ],
            target_total=Decimal("1"),
        )

        assert outcome.values == {
            "a": Decimal("0.34"),
            "b": Decimal("0.33"),
            "c": Decimal("0.33"),
        }
        assert outcome.adjusted_ids == ("a",)
        assert outcome.is_balanced

    def test_floor_fixed_group_skipped(self):
        outcome = RoundingReconciler().reconcile(
            allocations=[
                allocation("P1", [("a", THIRD)], floor=THIRD, floor_fixed=True),
                allocation("P2", [("b", THIRD)]),
                allocation("P3", [("c", THIRD)]),
            ],
            target_total=Decimal("1"),
        )

        assert outcome.values["a"] == Decimal("0.33")
        assert outcome.values["b"] == Decimal("0.34")
        assert outcome.adjusted_ids == ("b",)

    def test_negative_residual(self):
        outcome = RoundingReconciler().reconcile(
            allocations=[
                allocation("P1", [("a", "0.335")]),
                allocation("P2", [("b", "0.335")]),
                allocation("P3", [("c", "0.33")]),
            ],
            target_total=Decimal("1.00"),
        )

        assert outcome.values == {
            "a": Decimal("0.33"),
            "b": Decimal("0.34"),
            "c": Decimal("0.33"),
        }
        assert outcome.total == Decimal("1.00")

    def test_negative_residual_spills_past_floor(self):
        """An assignment whose group sits on its floor is passed over."""
        outcome = RoundingReconciler().reconcile(
            allocations=[
                allocation("P1", [("a", "0.335")], floor="0.335"),
                allocation("P2", [("b", "0.335")]),
                allocation("P3", [("c", "0.33")]),
            ],
            target_total=Decimal("1.00"),
        )

        assert outcome.values["a"] == Decimal("0.34")
        assert outcome.values["b"] == Decimal("0.33")
        assert outcome.adjusted_ids == ("b",)

    def test_negative_residual_never_below_zero(self):
        outcome = RoundingReconciler().reconcile(
            allocations=[
                allocation("P1", [("a", "0.005")]),
                allocation("P2", [("b", "0.005")]),
            ],
            target_total=Decimal("0"),
        )

        assert outcome.values == {"a": Decimal("0.00"), "b": Decimal("0.00")}
        assert outcome.is_balanced
        assert outcome.adjusted_ids == ("a", "b")


class TestUnresolved:
    """Residual with nowhere to go."""

    def _all_fixed(self):
        return [
            allocation(f"P{i}", [(f"a{i}", THIRD)], floor=THIRD, floor_fixed=True)
            for i in range(3)
        ]

    def test_reported_on_outcome(self, captured_logs):
        outcome = RoundingReconciler().reconcile(
            allocations=self._all_fixed(),
            target_total=Decimal("1"),
        )

        assert outcome.residual_unresolved == Decimal("0.01")
        assert not outcome.is_balanced
        assert outcome.total == Decimal("0.99")
        assert any(
            r["message"] == "rounding_residual_unresolved" for r in captured_logs()
        )

    def test_strict_mode_raises(self):
        with pytest.raises(RoundingResidualUnresolvedError) as exc_info:
            RoundingReconciler(strict=True).reconcile(
                allocations=self._all_fixed(),
                target_total=Decimal("1"),
            )

        assert exc_info.value.residual == Decimal("0.01")
        assert exc_info.value.code == "ROUNDING_RESIDUAL_UNRESOLVED"
