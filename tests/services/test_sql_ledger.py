"""
Tests for SqlEffortLedger and the service wired over it.

Runs against DATABASE_URL, or in-memory SQLite by default.

Covers:
- Budget lookup, missing budgets and out-of-contract substitution
- Effort cells limited to work packages active in the month
- Confirmed travel floor (status match, month and project filters)
- Lock flags
- Batch validation before any write
- A full resolution through build_overload_service
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from effort_config.schema import EngineSettings
from effort_kernel.db.engine import is_postgres
from effort_kernel.domain.dtos import ResolutionStatus, ValueUpdate
from effort_kernel.exceptions import (
    AssignmentNotFoundError,
    InvalidEffortValueError,
    MonthlyBudgetNotFoundError,
    WorkPackageNotFoundError,
)
from effort_kernel.models import MonthlyEffort, WorkPackageAssignment
from effort_kernel.services.sql_ledger import SqlEffortLedger
from effort_services.locks import PersonMonthLocks
from effort_services.overload_service import build_overload_service

JAN = date(2025, 1, 1)


@pytest.fixture
def person():
    return uuid4()


@pytest.fixture
def sql_ledger(session):
    return SqlEffortLedger(session)


class TestBudget:

    def test_budget_value(self, sql_ledger, effort_data, person):
        effort_data.budget(person, JAN, "0.80")

        assert sql_ledger.get_monthly_budget(person, 2025, 1) == Decimal("0.80")

    def test_missing_budget(self, sql_ledger, effort_data, person):
        effort_data.budget(person, date(2025, 2, 1), "0.80")

        with pytest.raises(MonthlyBudgetNotFoundError) as exc_info:
            sql_ledger.get_monthly_budget(person, 2025, 1)

        assert exc_info.value.person_id == str(person)
        assert exc_info.value.period == "2025-01"

    def test_out_of_contract_default(self, sql_ledger, effort_data, person):
        effort_data.budget(person, JAN, "0.20", out_of_contract=True)

        assert sql_ledger.get_monthly_budget(person, 2025, 1) == Decimal("1")

    def test_out_of_contract_configured(self, session, effort_data, person):
        effort_data.budget(person, JAN, "0.20", out_of_contract=True)
        ledger = SqlEffortLedger(session, out_of_contract_budget=Decimal("0.5"))

        assert ledger.get_monthly_budget(person, 2025, 1) == Decimal("0.5")


class TestAssignments:

    def test_only_active_work_packages(self, sql_ledger, effort_data, person):
        project = effort_data.project("P1")
        active = effort_data.work_package(project, "WP-active")
        ended = effort_data.work_package(
            project, "WP-ended", start=date(2024, 1, 1), end=date(2024, 12, 31),
        )
        future = effort_data.work_package(
            project, "WP-future", start=date(2025, 2, 1), end=date(2025, 6, 30),
        )
        kept = effort_data.effort(person, active, JAN, "0.50")
        effort_data.effort(person, ended, JAN, "0.30")
        effort_data.effort(person, future, JAN, "0.20")

        snapshots = sql_ledger.get_assignments_for_person_month(person, 2025, 1)

        assert [s.assignment_id for s in snapshots] == [kept.id]
        assert snapshots[0].project_id == project.id
        assert snapshots[0].work_package_id == active.id
        assert snapshots[0].value == Decimal("0.50")

    def test_work_package_overlapping_month_edge(self, sql_ledger, effort_data, person):
        project = effort_data.project("P1")
        wp = effort_data.work_package(
            project, "WP-edge", start=date(2025, 1, 31), end=date(2025, 3, 31),
        )
        effort_data.effort(person, wp, JAN, "0.10")

        assert len(sql_ledger.get_assignments_for_person_month(person, 2025, 1)) == 1

    def test_other_month_and_person_excluded(self, sql_ledger, effort_data, person):
        project = effort_data.project("P1")
        wp = effort_data.work_package(project)
        effort_data.effort(person, wp, date(2025, 2, 1), "0.50")
        effort_data.effort(uuid4(), wp, JAN, "0.50")

        assert sql_ledger.get_assignments_for_person_month(person, 2025, 1) == []

    def test_missing_work_package(self, session, sql_ledger, person):
        if is_postgres():
            pytest.skip("foreign keys are enforced on PostgreSQL")
        assignment = WorkPackageAssignment(work_package_id=uuid4(), person_id=person)
        session.add(assignment)
        session.flush()
        session.add(MonthlyEffort(assignment_id=assignment.id, month=JAN, value=Decimal("0.5")))
        session.flush()

        with pytest.raises(WorkPackageNotFoundError) as exc_info:
            sql_ledger.get_assignments_for_person_month(person, 2025, 1)

        assert exc_info.value.assignment_id == str(assignment.id)


class TestTravelFloor:

    def test_sums_confirmed_charges_in_month(self, sql_ledger, effort_data, person):
        project = effort_data.project("P1")
        other = effort_data.project("P2")
        effort_data.travel(person, project, date(2025, 1, 11), "0.15")
        effort_data.travel(person, project, date(2025, 1, 12), "0.15", status="confirmed")
        effort_data.travel(person, project, date(2025, 1, 13), "0.10", status="CONFIRMED")
        effort_data.travel(person, project, date(2025, 1, 14), "0.50", status="Pending")
        effort_data.travel(person, project, date(2025, 2, 1), "0.50")
        effort_data.travel(person, other, date(2025, 1, 11), "0.50")
        effort_data.travel(uuid4(), project, date(2025, 1, 15), "0.50")

        floor = sql_ledger.get_confirmed_travel_floor(person, project.id, 2025, 1)

        assert floor == Decimal("0.40")

    def test_no_charges_is_zero(self, sql_ledger, effort_data, person):
        project = effort_data.project("P1")

        assert sql_ledger.get_confirmed_travel_floor(person, project.id, 2025, 1) == 0


class TestLocks:

    def test_lock_flags(self, sql_ledger, effort_data, person):
        locked = effort_data.project("P1")
        unlocked = effort_data.project("P2")
        effort_data.lock(person, locked, 2025, 1)
        effort_data.lock(person, unlocked, 2025, 1, is_locked=False)

        assert sql_ledger.is_locked(person, locked.id, 2025, 1)
        assert not sql_ledger.is_locked(person, unlocked.id, 2025, 1)
        assert not sql_ledger.is_locked(person, locked.id, 2025, 2)


class TestPersist:

    def _two_cells(self, effort_data, person):
        project = effort_data.project("P1")
        wp1 = effort_data.work_package(project, "WP-1")
        wp2 = effort_data.work_package(project, "WP-2")
        return (
            effort_data.effort(person, wp1, JAN, "0.50"),
            effort_data.effort(person, wp2, JAN, "0.50"),
        )

    def test_values_written(self, session, sql_ledger, effort_data, person):
        first, second = self._two_cells(effort_data, person)

        sql_ledger.persist_assignment_values([
            ValueUpdate(first.id, Decimal("0.40")),
            ValueUpdate(second.id, Decimal("0.30")),
        ])
        session.expire_all()

        assert session.get(MonthlyEffort, first.id).value == Decimal("0.40")
        assert session.get(MonthlyEffort, second.id).value == Decimal("0.30")

    def test_unknown_assignment_rejects_whole_batch(self, session, sql_ledger, effort_data, person):
        first, _ = self._two_cells(effort_data, person)

        with pytest.raises(AssignmentNotFoundError):
            sql_ledger.persist_assignment_values([
                ValueUpdate(first.id, Decimal("0.10")),
                ValueUpdate(uuid4(), Decimal("0.10")),
            ])

        assert first.value == Decimal("0.50")

    @pytest.mark.parametrize("value", ["-0.01", "10.00"])
    def test_out_of_range_value_rejected(self, sql_ledger, effort_data, person, value):
        first, _ = self._two_cells(effort_data, person)

        with pytest.raises(InvalidEffortValueError):
            sql_ledger.persist_assignment_values([ValueUpdate(first.id, Decimal(value))])

        assert first.value == Decimal("0.50")

    def test_empty_batch_is_noop(self, sql_ledger):
        sql_ledger.persist_assignment_values([])


class TestServiceOverDatabase:
    """A full resolution through the SQL ledger."""

    def test_travel_floor_respected(self, session, effort_data, person):
        travel_project = effort_data.project("TRAVEL")
        other_project = effort_data.project("OTHER")
        travel = effort_data.effort(
            person, effort_data.work_package(travel_project, "WP-Travel"), JAN, "0.50",
        )
        other = effort_data.effort(
            person, effort_data.work_package(other_project, "WP-Other"), JAN, "0.50",
        )
        effort_data.budget(person, JAN, "0.80")
        effort_data.travel(person, travel_project, date(2025, 1, 11), "0.15")
        effort_data.travel(person, travel_project, date(2025, 1, 12), "0.15")
        effort_data.travel(person, travel_project, date(2025, 1, 13), "0.10")

        service = build_overload_service(
            session, settings=EngineSettings(), locks=PersonMonthLocks(),
        )
        result = service.adjust_monthly_overload(person, 2025, 1)
        session.expire_all()

        assert result.status == ResolutionStatus.RESOLVED
        assert session.get(MonthlyEffort, travel.id).value == Decimal("0.40")
        assert session.get(MonthlyEffort, other.id).value == Decimal("0.40")

    def test_locked_project_untouched(self, session, effort_data, person):
        locked_project = effort_data.project("LOCKED")
        open_project = effort_data.project("OPEN")
        locked = effort_data.effort(
            person, effort_data.work_package(locked_project), JAN, "0.30",
        )
        unlocked = effort_data.effort(
            person, effort_data.work_package(open_project), JAN, "0.90",
        )
        effort_data.budget(person, JAN, "1.00")
        effort_data.lock(person, locked_project, 2025, 1)

        service = build_overload_service(
            session, settings=EngineSettings(), locks=PersonMonthLocks(),
        )
        result = service.adjust_monthly_overload(person, 2025, 1)
        session.expire_all()

        assert result.success
        assert [u.assignment_id for u in result.updates] == [unlocked.id]
        assert session.get(MonthlyEffort, locked.id).value == Decimal("0.30")
        assert session.get(MonthlyEffort, unlocked.id).value == Decimal("0.70")

    def test_missing_budget_propagates(self, session, effort_data, person):
        project = effort_data.project("P1")
        cell = effort_data.effort(person, effort_data.work_package(project), JAN, "0.90")

        service = build_overload_service(
            session, settings=EngineSettings(), locks=PersonMonthLocks(),
        )
        with pytest.raises(MonthlyBudgetNotFoundError):
            service.adjust_monthly_overload(person, 2025, 1)

        assert cell.value == Decimal("0.90")
