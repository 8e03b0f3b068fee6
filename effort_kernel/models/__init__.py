"""Domain models for the effort kernel."""

from effort_kernel.models.effort import MonthlyBudget, MonthlyEffort
from effort_kernel.models.project import Project, WorkPackage, WorkPackageAssignment
from effort_kernel.models.travel import ProjectMonthLock, TravelCharge

__all__ = [
    "Project",
    "WorkPackage",
    "WorkPackageAssignment",
    "MonthlyEffort",
    "MonthlyBudget",
    "TravelCharge",
    "ProjectMonthLock",
]
