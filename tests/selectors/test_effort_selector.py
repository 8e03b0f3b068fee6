"""
Tests for EffortSelector.

Covers:
- Effort cells of a person-month and their order
- Effort rows across a range of months
- Monthly assigned-vs-budget totals
- People and months of a work package
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from effort_kernel.domain.values import PersonMonth
from effort_kernel.exceptions import WorkPackageNotFoundError
from effort_kernel.selectors.effort_selector import EffortSelector


@pytest.fixture
def selector(session):
    return EffortSelector(session)


@pytest.fixture
def person():
    return uuid4()


class TestAssignmentsForPersonMonth:

    def test_cells_grouped_by_project_then_work_package(self, selector, effort_data, person):
        p1 = effort_data.project("P1")
        p2 = effort_data.project("P2")
        jan = date(2025, 1, 1)
        cells = [
            effort_data.effort(person, effort_data.work_package(p1, "WP-B"), jan, "0.10"),
            effort_data.effort(person, effort_data.work_package(p2, "WP-A"), jan, "0.20"),
            effort_data.effort(person, effort_data.work_package(p1, "WP-A"), jan, "0.30"),
        ]

        snapshots = selector.assignments_for_person_month(PersonMonth(person, 2025, 1))

        assert {s.assignment_id for s in snapshots} == {c.id for c in cells}
        projects = [s.project_id for s in snapshots]
        # Cells of one project are contiguous
        changes = sum(1 for a, b in zip(projects, projects[1:]) if a != b)
        assert changes == 1
        p1_values = [s.value for s in snapshots if s.project_id == p1.id]
        assert p1_values == [Decimal("0.30"), Decimal("0.10")]

    def test_empty_month(self, selector, person):
        assert selector.assignments_for_person_month(PersonMonth(person, 2025, 1)) == []


class TestEffortRowsBetween:

    def test_rows_in_range_from_active_work_packages(self, selector, effort_data, person):
        project = effort_data.project("P1")
        wp = effort_data.work_package(
            project, start=date(2025, 1, 1), end=date(2025, 2, 28),
        )
        effort_data.effort(person, wp, date(2025, 1, 1), "0.40")
        effort_data.effort(person, wp, date(2025, 2, 1), "0.50")
        effort_data.effort(person, wp, date(2025, 3, 1), "0.60")
        effort_data.effort(person, wp, date(2025, 4, 1), "0.70")

        rows = selector.effort_rows_between(person, date(2025, 1, 1), date(2025, 3, 31))

        assert [(r.month, r.value) for r in rows] == [
            (date(2025, 1, 1), Decimal("0.40")),
            (date(2025, 2, 1), Decimal("0.50")),
        ]
        assert rows[0].project_id == project.id
        assert rows[0].work_package_id == wp.id

    def test_inverted_range(self, selector, person):
        assert selector.effort_rows_between(person, date(2025, 3, 1), date(2025, 1, 1)) == []


class TestMonthlyTotals:

    def test_totals_against_budget(self, selector, effort_data, person):
        project = effort_data.project("P1")
        wp1 = effort_data.work_package(project, "WP-1")
        wp2 = effort_data.work_package(project, "WP-2")
        effort_data.effort(person, wp1, date(2025, 1, 1), "0.60")
        effort_data.effort(person, wp2, date(2025, 1, 1), "0.40")
        effort_data.budget(person, date(2025, 1, 1), "0.80")
        effort_data.budget(person, date(2025, 2, 1), "0.80")
        effort_data.effort(person, wp1, date(2025, 3, 1), "0.90")

        loads = selector.monthly_totals(person, date(2025, 1, 1), date(2025, 3, 31))

        # March has no budget and is left out
        assert [load.person_month for load in loads] == [
            PersonMonth(person, 2025, 1),
            PersonMonth(person, 2025, 2),
        ]
        january, february = loads
        assert january.assigned == Decimal("1.00")
        assert january.is_overloaded
        assert january.excess == Decimal("0.20")
        assert february.assigned == Decimal("0")
        assert not february.is_overloaded

    def test_out_of_contract_budget(self, selector, effort_data, person):
        project = effort_data.project("P1")
        wp = effort_data.work_package(project)
        effort_data.effort(person, wp, date(2025, 1, 1), "0.90")
        effort_data.budget(person, date(2025, 1, 1), "0.10", out_of_contract=True)

        (load,) = selector.monthly_totals(person, date(2025, 1, 1), date(2025, 1, 31))

        assert load.budget == Decimal("1")
        assert not load.is_overloaded


class TestWorkPackageQueries:

    def test_people_on_work_package(self, selector, effort_data):
        project = effort_data.project("P1")
        wp = effort_data.work_package(project)
        other = effort_data.work_package(project, "WP-other")
        people = [uuid4(), uuid4(), uuid4()]
        for person in people:
            effort_data.assignment(person, wp.id)
        effort_data.assignment(uuid4(), other.id)

        assert selector.people_on_work_package(wp.id) == sorted(people, key=str)

    def test_work_package_months(self, selector, effort_data):
        project = effort_data.project("P1")
        wp = effort_data.work_package(
            project, start=date(2024, 12, 15), end=date(2025, 2, 1),
        )

        assert selector.work_package_months(wp.id) == [
            date(2024, 12, 1),
            date(2025, 1, 1),
            date(2025, 2, 1),
        ]

    def test_unknown_work_package(self, selector):
        with pytest.raises(WorkPackageNotFoundError):
            selector.work_package_months(uuid4())
