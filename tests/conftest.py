"""
Pytest fixtures for the effort kernel test suite.

Provides:
- Structured log capture
- In-memory ledgers and services wired over them
- SQLite database sessions for the SQL ledger and selectors
- A builder that inserts effort data through a session

Environment Variables:
- DATABASE_URL: connection URL for the SQL tests.  Defaults to an in-memory
  SQLite database so the suite runs without a server.
"""

import json
import logging
import os
from datetime import date
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID

import pytest
from sqlalchemy.orm import Session

from effort_config.schema import EngineSettings
from effort_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from effort_kernel.domain.ledger import InMemoryEffortLedger
from effort_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from effort_kernel.models import (
    MonthlyBudget,
    MonthlyEffort,
    Project,
    ProjectMonthLock,
    TravelCharge,
    WorkPackage,
    WorkPackageAssignment,
)
from effort_services.locks import PersonMonthLocks
from effort_services.overload_service import OverloadAdjustmentService

DEFAULT_DATABASE_URL = "sqlite:///:memory:"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture effort_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, service):
            service.adjust_monthly_overload(...)
            logs = captured_logs()
            assert any(r["message"] == "overload_resolution_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("effort_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# In-memory ledger fixtures
# =============================================================================


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings()


@pytest.fixture
def ledger() -> InMemoryEffortLedger:
    return InMemoryEffortLedger()


@pytest.fixture
def locks() -> PersonMonthLocks:
    return PersonMonthLocks()


@pytest.fixture
def service(ledger, settings, locks) -> OverloadAdjustmentService:
    return OverloadAdjustmentService(ledger=ledger, settings=settings, locks=locks)


# =============================================================================
# Database fixtures
# =============================================================================


def get_database_url() -> str:
    """Get database URL from environment, or use in-memory SQLite."""
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


@pytest.fixture
def db_engine():
    """Fresh engine and schema per test."""
    engine = init_engine_from_url(get_database_url())
    create_tables()
    yield engine
    drop_tables()
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """Session whose uncommitted work is rolled back after the test."""
    session = get_session()
    yield session
    session.rollback()
    session.close()


class EffortDataBuilder:
    """Insert projects, work packages, efforts, budgets, travel and locks."""

    def __init__(self, session: Session):
        self.session = session
        self._assignments: dict[tuple, WorkPackageAssignment] = {}

    def _add(self, obj):
        self.session.add(obj)
        self.session.flush()
        return obj

    def project(self, code: str) -> Project:
        return self._add(Project(code=code, name=f"Project {code}"))

    def work_package(
        self,
        project: Project,
        name: str = "WP",
        start: date = date(2025, 1, 1),
        end: date = date(2025, 12, 31),
    ) -> WorkPackage:
        return self._add(
            WorkPackage(project_id=project.id, name=name, start_date=start, end_date=end)
        )

    def assignment(self, person_id: UUID, work_package_id: UUID) -> WorkPackageAssignment:
        key = (person_id, work_package_id)
        if key not in self._assignments:
            self._assignments[key] = self._add(
                WorkPackageAssignment(work_package_id=work_package_id, person_id=person_id)
            )
        return self._assignments[key]

    def effort(
        self,
        person_id: UUID,
        work_package: WorkPackage,
        month: date,
        value: str,
    ) -> MonthlyEffort:
        assignment = self.assignment(person_id, work_package.id)
        return self._add(
            MonthlyEffort(
                assignment_id=assignment.id,
                month=date(month.year, month.month, 1),
                value=Decimal(value),
            )
        )

    def budget(
        self,
        person_id: UUID,
        month: date,
        value: str,
        out_of_contract: bool = False,
    ) -> MonthlyBudget:
        return self._add(
            MonthlyBudget(
                person_id=person_id,
                month=date(month.year, month.month, 1),
                value=Decimal(value),
                is_out_of_contract=out_of_contract,
            )
        )

    def travel(
        self,
        person_id: UUID,
        project: Project,
        day: date,
        pms: str,
        status: str = "Confirmed",
        liquidation_id: str = "LIQ001",
    ) -> TravelCharge:
        return self._add(
            TravelCharge(
                liquidation_id=liquidation_id,
                person_id=person_id,
                project_id=project.id,
                day=day,
                pms=Decimal(pms),
                status=status,
            )
        )

    def lock(
        self,
        person_id: UUID,
        project: Project,
        year: int,
        month: int,
        is_locked: bool = True,
    ) -> ProjectMonthLock:
        return self._add(
            ProjectMonthLock(
                person_id=person_id,
                project_id=project.id,
                year=year,
                month=month,
                is_locked=is_locked,
            )
        )


@pytest.fixture
def effort_data(session) -> EffortDataBuilder:
    return EffortDataBuilder(session)
