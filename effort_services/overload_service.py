"""
effort_services.overload_service -- Monthly effort overload resolution.

Responsibility:
    Orchestrate one ``adjust_monthly_overload(person_id, year, month)``
    call: load the person-month from an EffortLedger, classify and
    water-fill it with OverloadResolver, round with RoundingReconciler, and
    hand the final batch back to the ledger.

Architecture position:
    Services -- stateful orchestration over engines + kernel.
    The only layer that holds a ledger and a lock registry.

Invariants enforced:
    - At most one resolution per person-month at a time in this process
      (PersonMonthLocks).
    - Every early exit (no overload, locked infeasible, travel infeasible)
      leaves the ledger untouched.
    - A resolved month overwrites every unlocked assignment in ONE
      persist call; locked assignments are never part of the batch.
    - Data inconsistencies raised by the ledger propagate before any write.

Failure modes:
    - LedgerError subclasses (missing budget, missing work package,
      invalid value) propagate to the caller.
    - ResolutionInProgressError when settings.lock_blocking is False and
      the person-month is busy.

Usage:
    with session_scope() as session:
        service = build_overload_service(session)
        result = service.adjust_monthly_overload(person_id, 2025, 1)
        print(result.message)
"""

from __future__ import annotations

import time

from sqlalchemy.orm import Session

from effort_config import get_active_settings
from effort_config.schema import EngineSettings
from effort_engines.allocation_group import build_groups
from effort_engines.overload import OverloadResolver
from effort_engines.rounding import RoundingReconciler
from effort_kernel.domain.dtos import ResolutionResult, ResolutionStatus, ValueUpdate
from effort_kernel.domain.ledger import EffortLedger
from effort_kernel.domain.values import EntityId, PersonMonth
from effort_kernel.logging_config import LogContext, get_logger
from effort_kernel.services.sql_ledger import SqlEffortLedger
from effort_services.locks import PersonMonthLocks

logger = get_logger("services.overload")

# Shared by every service built through build_overload_service()
_SHARED_LOCKS = PersonMonthLocks()


class OverloadAdjustmentService:
    """
    Resolve monthly effort overload for one person-month at a time.

    Contract:
        Receives the ledger, settings and lock registry via constructor
        injection.  Returns a ResolutionResult for every business outcome
        and raises only for data inconsistencies.
    Non-goals:
        - Does not commit; a SQL ledger flushes inside the caller's
          transaction.
        - Does not decide which projects a person works on or compute the
          monthly budget.
    """

    def __init__(
        self,
        ledger: EffortLedger,
        settings: EngineSettings | None = None,
        locks: PersonMonthLocks | None = None,
        resolver: OverloadResolver | None = None,
        reconciler: RoundingReconciler | None = None,
    ):
        self._ledger = ledger
        self._settings = settings or EngineSettings()
        self._locks = locks if locks is not None else PersonMonthLocks()
        self._resolver = resolver or OverloadResolver()
        self._reconciler = reconciler or RoundingReconciler(
            precision=self._settings.precision,
        )

    @property
    def ledger(self) -> EffortLedger:
        return self._ledger

    def adjust_monthly_overload(
        self,
        person_id: EntityId,
        year: int,
        month: int,
    ) -> ResolutionResult:
        """
        Shrink the person's effort for the month back to the budget.

        Returns:
            ResolutionResult whose ``message`` is one of the four fixed
            messages.

        Raises:
            LedgerError: On inconsistent ledger data.
            ResolutionInProgressError: When the person-month is busy and the
                settings do not allow waiting.
        """
        key = PersonMonth(person_id, year, month)
        with LogContext.bind(person_id=str(person_id), period=key.label):
            with self._locks.hold(key, blocking=self._settings.lock_blocking):
                return self._resolve(key)

    def _resolve(self, key: PersonMonth) -> ResolutionResult:
        t0 = time.monotonic()
        person_id, year, month = key.person_id, key.year, key.month
        logger.info("overload_resolution_started")

        snapshots = self._ledger.get_assignments_for_person_month(person_id, year, month)
        budget = self._ledger.get_monthly_budget(person_id, year, month)

        project_ids = list(dict.fromkeys(s.project_id for s in snapshots))
        locked = {
            pid for pid in project_ids
            if self._ledger.is_locked(person_id, pid, year, month)
        }
        floors = {
            pid: self._ledger.get_confirmed_travel_floor(person_id, pid, year, month)
            for pid in project_ids
        }

        groups = build_groups(snapshots, travel_floors=floors, locked_projects=locked)
        plan = self._resolver.resolve(groups=groups, budget=budget)

        if not plan.requires_reallocation:
            result = ResolutionResult.from_status(plan.status, person_month=key)
            self._log_completed(result, t0)
            return result

        outcome = self._reconciler.reconcile(
            allocations=plan.allocations,
            target_total=plan.scalable_budget,
        )

        updates = tuple(
            ValueUpdate(assignment_id=aid, new_value=outcome.values[aid])
            for allocation in plan.allocations
            for aid in allocation.assignment_ids
        )
        self._ledger.persist_assignment_values(list(updates))

        notes: tuple[str, ...] = ()
        if not outcome.is_balanced:
            residual = outcome.residual_unresolved
            notes = (
                f"Rounding residual {residual} could not be placed; "
                f"unlocked total is {outcome.total} against {outcome.target_total}.",
            )
            if abs(residual) > self._settings.residual_tolerance:
                logger.error("rounding_residual_over_tolerance", extra={
                    "residual": str(residual),
                    "tolerance": str(self._settings.residual_tolerance),
                })

        result = ResolutionResult.from_status(
            ResolutionStatus.RESOLVED,
            person_month=key,
            updates=updates,
            notes=notes,
        )
        self._log_completed(result, t0, iterations=plan.iterations)
        return result

    def _log_completed(
        self,
        result: ResolutionResult,
        t0: float,
        iterations: int = 0,
    ) -> None:
        logger.info("overload_resolution_completed", extra={
            "status": result.status.value,
            "success": result.success,
            "update_count": len(result.updates),
            "note_count": len(result.notes),
            "iterations": iterations,
            "duration_ms": round((time.monotonic() - t0) * 1000, 2),
        })


def build_overload_service(
    session: Session,
    settings: EngineSettings | None = None,
    locks: PersonMonthLocks | None = None,
) -> OverloadAdjustmentService:
    """Wire an OverloadAdjustmentService over a SqlEffortLedger.

    Settings default to ``get_active_settings()``; locks default to the
    registry shared by every service this factory builds.
    """
    settings = settings or get_active_settings()
    ledger = SqlEffortLedger(
        session,
        confirmed_status=settings.confirmed_travel_status,
        out_of_contract_budget=settings.out_of_contract_budget,
        max_value=settings.max_value,
    )
    return OverloadAdjustmentService(
        ledger=ledger,
        settings=settings,
        locks=locks if locks is not None else _SHARED_LOCKS,
    )
