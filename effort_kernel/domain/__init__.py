"""
Pure domain layer.

This module contains pure data transfer objects, value helpers and the
ledger protocol with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

All domain objects are immutable and deterministic, except the in-memory
ledger which exists to stand in for the database.
"""

from effort_kernel.domain.dtos import (
    LOCKED_INFEASIBLE_MESSAGE,
    NO_OVERLOAD_MESSAGE,
    RESOLVED_MESSAGE,
    TRAVEL_INFEASIBLE_MESSAGE,
    AssignmentSnapshot,
    MonthlyLoad,
    ResolutionResult,
    ResolutionStatus,
    ValueUpdate,
)
from effort_kernel.domain.ledger import (
    EffortLedger,
    InMemoryEffortLedger,
    TravelChargeRecord,
)
from effort_kernel.domain.values import (
    DEFAULT_PRECISION,
    ONE_PM,
    ZERO,
    EntityId,
    PersonMonth,
    month_range,
    quantize_effort,
    sum_effort,
    to_effort,
)

__all__ = [
    # Values
    "DEFAULT_PRECISION",
    "ONE_PM",
    "ZERO",
    "EntityId",
    "PersonMonth",
    "quantize_effort",
    "month_range",
    "sum_effort",
    "to_effort",
    # DTOs
    "AssignmentSnapshot",
    "MonthlyLoad",
    "ResolutionResult",
    "ResolutionStatus",
    "ValueUpdate",
    "NO_OVERLOAD_MESSAGE",
    "LOCKED_INFEASIBLE_MESSAGE",
    "TRAVEL_INFEASIBLE_MESSAGE",
    "RESOLVED_MESSAGE",
    # Ledger
    "EffortLedger",
    "InMemoryEffortLedger",
    "TravelChargeRecord",
]
