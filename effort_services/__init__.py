"""
effort_services -- Package init and public API.

Responsibility:
    Stateful orchestration that composes the pure overload engines
    (effort_engines/) with an EffortLedger, a lock registry and engine
    settings.  This is the only layer that holds ledgers and locks.

Architecture position:
    Services -- stateful orchestration over engines + kernel.

    Dependency direction:
        effort_services/ -> effort_engines/  (allowed)
        effort_services/ -> effort_kernel/   (allowed)
        effort_services/ -> effort_config/   (allowed)
        effort_engines/  -> effort_services/ (FORBIDDEN)
        effort_kernel/   -> effort_services/ (FORBIDDEN)
"""

from effort_services.batch import (
    BatchItemOutcome,
    BatchSummary,
    OverloadBatchRunner,
    filter_overloaded,
    keys_for_person,
    keys_for_work_package,
    month_range,
    overloaded_keys,
)
from effort_services.locks import PersonMonthLocks
from effort_services.overload_service import (
    OverloadAdjustmentService,
    build_overload_service,
)

__all__ = [
    "BatchItemOutcome",
    "BatchSummary",
    "OverloadAdjustmentService",
    "OverloadBatchRunner",
    "filter_overloaded",
    "PersonMonthLocks",
    "build_overload_service",
    "keys_for_person",
    "keys_for_work_package",
    "month_range",
    "overloaded_keys",
]
