"""
Module: effort_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    overload-resolution engines.  This is the canonical import surface for
    effort_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import effort_kernel/domain, effort_kernel/exceptions and
    sibling engine modules.  MUST NOT import effort_services.

Invariants enforced:
    - Decimal-only arithmetic: effort values are ``Decimal``; floats are
      rejected at the domain boundary.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine invocation is traced via ``@traced_engine`` (see
    ``effort_engines.tracer``), emitting EFFORT_ENGINE_TRACE log records.

Usage:
    from effort_engines import OverloadResolver, RoundingReconciler, build_groups
"""

from effort_engines.allocation_group import (
    AllocationGroup,
    GroupAllocation,
    build_groups,
)
from effort_engines.overload import OverloadPlan, OverloadResolver
from effort_engines.rounding import RoundingOutcome, RoundingReconciler
from effort_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    # Groups
    "AllocationGroup",
    "GroupAllocation",
    "build_groups",
    # Overload
    "OverloadPlan",
    "OverloadResolver",
    # Rounding
    "RoundingOutcome",
    "RoundingReconciler",
    # Tracer
    "compute_input_fingerprint",
    "traced_engine",
]
