"""
Module: effort_kernel.models.project
Responsibility: ORM persistence for projects, their work packages, and the
    assignment of people to work packages.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - A work package belongs to exactly one project; the project is the
      grouping key of overload resolution.
    - A work package is active in a month when its [start_date, end_date]
      range overlaps the month.  Only active work packages take part in
      resolution.
    - A (person, work package) pair is assigned at most once
      (uq_wp_assignment).
"""

from datetime import date
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from effort_kernel.db.base import TrackedBase, UUIDString


class Project(TrackedBase):
    """A funded project that work packages and travel charges belong to."""

    __tablename__ = "projects"

    __table_args__ = (
        UniqueConstraint("code", name="uq_project_code"),
    )

    # Short acronym / SAP code
    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    work_packages: Mapped[list["WorkPackage"]] = relationship(
        back_populates="project",
    )

    def __repr__(self) -> str:
        return f"<Project {self.code}>"


class WorkPackage(TrackedBase):
    """
    A work package inside a project.

    Contract:
        Effort is declared per work package; overload resolution groups it
        back by project.
    """

    __tablename__ = "work_packages"

    __table_args__ = (
        UniqueConstraint("project_id", "name", name="uq_wp_project_name"),
        Index("idx_wp_dates", "start_date", "end_date"),
    )

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("projects.id"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    project: Mapped["Project"] = relationship(back_populates="work_packages")

    def __repr__(self) -> str:
        return f"<WorkPackage {self.name} ({self.start_date}..{self.end_date})>"

    def is_active_between(self, first_day: date, last_day: date) -> bool:
        """True when the work package overlaps [first_day, last_day]."""
        return self.start_date <= last_day and self.end_date >= first_day


class WorkPackageAssignment(TrackedBase):
    """A person assigned to a work package; monthly effort hangs off it."""

    __tablename__ = "work_package_assignments"

    __table_args__ = (
        UniqueConstraint("work_package_id", "person_id", name="uq_wp_assignment"),
        Index("idx_wpa_person", "person_id"),
    )

    work_package_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("work_packages.id"),
        nullable=False,
    )

    person_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    def __repr__(self) -> str:
        return f"<WorkPackageAssignment wp={self.work_package_id} person={self.person_id}>"
