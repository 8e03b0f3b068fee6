"""
Typed Exception Hierarchy for the Effort Kernel.

===============================================================================
WHAT RAISES AND WHAT RETURNS
===============================================================================

Overload resolution has two kinds of failure:

  - Business outcomes (no overload, locked efforts over budget, travel floors
    over budget).  These are NOT exceptions.  They are reported through
    ``ResolutionResult`` so controllers and batch jobs can show the message
    to the user without a try/except.

  - Data inconsistencies (a missing budget row, an effort row pointing at a
    work package that does not exist, a negative stored value).  These are
    raised as the typed exceptions below and escalate to the caller.  They
    are always detected before any value is written.

Every exception carries a class-level ``code`` (machine-readable, API-safe)
and its context as attributes, never only inside the message string.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    EffortKernelError (base)
    |
    +-- LedgerError
    |   +-- MonthlyBudgetNotFoundError
    |   +-- AssignmentNotFoundError
    |   +-- WorkPackageNotFoundError
    |   +-- InvalidEffortValueError
    |   +-- DuplicateAssignmentError
    |
    +-- ConcurrencyError
    |   +-- ResolutionInProgressError
    |
    +-- RoundingError
        +-- RoundingResidualUnresolvedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                          | When Raised
-------------|-------------------------------|-----------------------------------
Ledger       | MONTHLY_BUDGET_NOT_FOUND      | No budget row for person/month
             | ASSIGNMENT_NOT_FOUND          | Effort row references unknown
             |                               | assignment, or batch names one
             | WORK_PACKAGE_NOT_FOUND        | Assignment references unknown WP
             | INVALID_EFFORT_VALUE          | Negative / out-of-range value
             | DUPLICATE_ASSIGNMENT          | Same assignment id loaded twice
-------------|-------------------------------|-----------------------------------
Concurrency  | RESOLUTION_IN_PROGRESS        | Person-month already being resolved
-------------|-------------------------------|-----------------------------------
Rounding     | ROUNDING_RESIDUAL_UNRESOLVED  | Strict mode only: residual could
             |                               | not be placed on any assignment
===============================================================================
"""

from decimal import Decimal


class EffortKernelError(Exception):
    """
    Base exception for all effort kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "EFFORT_KERNEL_ERROR"


# Ledger / data consistency exceptions


class LedgerError(EffortKernelError):
    """Base exception for inconsistent ledger data."""

    code: str = "LEDGER_ERROR"


class MonthlyBudgetNotFoundError(LedgerError):
    """No monthly budget is recorded for the person and month."""

    code: str = "MONTHLY_BUDGET_NOT_FOUND"

    def __init__(self, person_id: str, period: str):
        self.person_id = str(person_id)
        self.period = period
        super().__init__(
            f"No monthly budget recorded for person {person_id} in {period}"
        )


class AssignmentNotFoundError(LedgerError):
    """An effort row or update references an assignment that does not exist."""

    code: str = "ASSIGNMENT_NOT_FOUND"

    def __init__(self, assignment_id: str):
        self.assignment_id = str(assignment_id)
        super().__init__(f"Effort assignment not found: {assignment_id}")


class WorkPackageNotFoundError(LedgerError):
    """An assignment references a work package that does not exist."""

    code: str = "WORK_PACKAGE_NOT_FOUND"

    def __init__(self, work_package_id: str, assignment_id: str | None = None):
        self.work_package_id = str(work_package_id)
        self.assignment_id = str(assignment_id) if assignment_id is not None else None
        super().__init__(
            f"Work package {work_package_id} not found"
            + (f" (referenced by assignment {assignment_id})" if assignment_id else "")
        )


class InvalidEffortValueError(LedgerError):
    """A stored or supplied effort value is outside the valid range."""

    code: str = "INVALID_EFFORT_VALUE"

    def __init__(self, subject: str, value: Decimal, reason: str):
        self.subject = subject
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid effort value {value} for {subject}: {reason}")


class DuplicateAssignmentError(LedgerError):
    """The same assignment id was loaded more than once for a person-month."""

    code: str = "DUPLICATE_ASSIGNMENT"

    def __init__(self, assignment_id: str):
        self.assignment_id = str(assignment_id)
        super().__init__(f"Assignment loaded more than once: {assignment_id}")


# Concurrency exceptions


class ConcurrencyError(EffortKernelError):
    """Base exception for concurrency issues."""

    code: str = "CONCURRENCY_ERROR"


class ResolutionInProgressError(ConcurrencyError):
    """Another resolution holds the lock for this person-month."""

    code: str = "RESOLUTION_IN_PROGRESS"

    def __init__(self, person_id: str, period: str):
        self.person_id = str(person_id)
        self.period = period
        super().__init__(
            f"Overload resolution already running for person {person_id} in {period}"
        )


# Rounding exceptions


class RoundingError(EffortKernelError):
    """Base exception for rounding issues."""

    code: str = "ROUNDING_ERROR"


class RoundingResidualUnresolvedError(RoundingError):
    """
    The rounding residual could not be absorbed by any adjustable assignment.

    Only raised by callers that opt into strict reconciliation; the default
    path reports the residual as a note on the result.
    """

    code: str = "ROUNDING_RESIDUAL_UNRESOLVED"

    def __init__(self, residual: Decimal, target_total: Decimal):
        self.residual = residual
        self.target_total = target_total
        super().__init__(
            f"Rounding residual {residual} left unresolved "
            f"against target total {target_total}"
        )
