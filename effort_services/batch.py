"""
effort_services.batch -- Overload resolution over many person-months.

Responsibility:
    Run ``adjust_monthly_overload`` for a list of person-month keys and
    summarise the outcomes; build those key lists for a person, for a work
    package (the trigger after a timesheet import) or for the overloaded
    months of a person only.

Architecture position:
    Services -- stateful orchestration.  Uses OverloadAdjustmentService and
    the read-only EffortSelector.

Invariants enforced:
    - One failing key never aborts the rest; its error is recorded on the
      summary.
    - With a session, each key runs in its own SAVEPOINT so a failed key
      leaves no partial writes behind.
    - Keys are processed in the order given.
"""

from __future__ import annotations

import time
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from effort_kernel.domain.dtos import ResolutionResult, ResolutionStatus
from effort_kernel.domain.values import ONE_PM, EntityId, PersonMonth, month_range
from effort_kernel.logging_config import get_logger
from effort_kernel.selectors.effort_selector import EffortSelector
from effort_services.overload_service import OverloadAdjustmentService

logger = get_logger("services.batch")


@dataclass(frozen=True)
class BatchItemOutcome:
    """Outcome of one key: a result, or the error that stopped it."""

    key: PersonMonth
    result: ResolutionResult | None = None
    error_code: str | None = None
    error_message: str | None = None

    @property
    def is_error(self) -> bool:
        return self.result is None

    @property
    def succeeded(self) -> bool:
        return self.result is not None and self.result.success


@dataclass(frozen=True)
class BatchSummary:
    """All outcomes of one batch run, in key order."""

    items: tuple[BatchItemOutcome, ...]
    duration_ms: float = 0.0

    @property
    def results(self) -> dict[PersonMonth, ResolutionResult]:
        return {i.key: i.result for i in self.items if i.result is not None}

    @property
    def errors(self) -> tuple[BatchItemOutcome, ...]:
        return tuple(i for i in self.items if i.is_error)

    @property
    def counts(self) -> dict[ResolutionStatus, int]:
        return dict(Counter(i.result.status for i in self.items if i.result is not None))

    def count(self, status: ResolutionStatus) -> int:
        return self.counts.get(status, 0)

    @property
    def all_succeeded(self) -> bool:
        return all(i.succeeded for i in self.items)


class OverloadBatchRunner:
    """
    Resolve a sequence of person-months one after the other.

    Contract:
        Does NOT commit.  With a session, every key runs inside
        ``session.begin_nested()``; the caller commits the outer transaction.
    """

    def __init__(
        self,
        service: OverloadAdjustmentService,
        session: Session | None = None,
    ):
        self._service = service
        self._session = session

    def run(self, keys: Iterable[PersonMonth]) -> BatchSummary:
        t0 = time.monotonic()
        items: list[BatchItemOutcome] = []

        for key in keys:
            savepoint = self._session.begin_nested() if self._session is not None else None
            try:
                result = self._service.adjust_monthly_overload(
                    key.person_id, key.year, key.month,
                )
                if savepoint is not None:
                    savepoint.commit()
                items.append(BatchItemOutcome(key=key, result=result))
            except Exception as exc:
                if savepoint is not None:
                    savepoint.rollback()
                logger.warning("batch_item_failed", exc_info=True, extra={
                    "item_key": str(key),
                })
                items.append(
                    BatchItemOutcome(
                        key=key,
                        error_code=getattr(exc, "code", "UNHANDLED_EXCEPTION"),
                        error_message=str(exc),
                    )
                )

        summary = BatchSummary(
            items=tuple(items),
            duration_ms=round((time.monotonic() - t0) * 1000, 2),
        )
        logger.info("batch_completed", extra={
            "item_count": len(items),
            "error_count": len(summary.errors),
            "counts": {status.value: n for status, n in summary.counts.items()},
            "duration_ms": summary.duration_ms,
        })
        return summary


def keys_for_person(person_id: EntityId, start: date, end: date) -> list[PersonMonth]:
    """One key per month of ``[start, end]`` for the person."""
    return [PersonMonth.of(person_id, day) for day in month_range(start, end)]


def keys_for_work_package(
    selector: EffortSelector,
    work_package_id: UUID,
    start: date | None = None,
    end: date | None = None,
) -> list[PersonMonth]:
    """Every (person, month) touched by a work package, person by person.

    ``start`` / ``end`` clip the work package's own months.
    """
    months = [
        day for day in selector.work_package_months(work_package_id)
        if (start is None or day >= date(start.year, start.month, 1))
        and (end is None or day <= end)
    ]
    return [
        PersonMonth.of(person_id, day)
        for person_id in selector.people_on_work_package(work_package_id)
        for day in months
    ]


def overloaded_keys(
    selector: EffortSelector,
    person_id: UUID,
    start: date,
    end: date,
    out_of_contract_budget: Decimal = ONE_PM,
) -> list[PersonMonth]:
    """Months of ``[start, end]`` whose assigned effort exceeds the budget."""
    return [
        load.person_month
        for load in selector.monthly_totals(
            person_id, start, end, out_of_contract_budget=out_of_contract_budget,
        )
        if load.is_overloaded
    ]


def filter_overloaded(
    selector: EffortSelector,
    keys: Sequence[PersonMonth],
    out_of_contract_budget: Decimal = ONE_PM,
) -> list[PersonMonth]:
    """Keep the keys whose month is overloaded, preserving their order.

    Runs one monthly-totals query per distinct person over the span of that
    person's keys.
    """
    spans: dict[EntityId, tuple[date, date]] = {}
    for key in keys:
        first, last = spans.get(key.person_id, (key.first_day, key.last_day))
        spans[key.person_id] = (min(first, key.first_day), max(last, key.last_day))

    overloaded: set[PersonMonth] = set()
    for person_id, (start, end) in spans.items():
        overloaded.update(overloaded_keys(
            selector, person_id, start, end,
            out_of_contract_budget=out_of_contract_budget,
        ))
    return [key for key in keys if key in overloaded]


__all__ = [
    "BatchItemOutcome",
    "BatchSummary",
    "OverloadBatchRunner",
    "filter_overloaded",
    "keys_for_person",
    "keys_for_work_package",
    "month_range",
    "overloaded_keys",
]
