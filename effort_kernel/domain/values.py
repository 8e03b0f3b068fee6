"""
Values -- Immutable, self-validating effort value objects.

Responsibility:
    Provides the value types shared by every effort computation: the
    person-month key and the Decimal helpers that bring PM fractions to
    ledger precision.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every other domain module and by the engines.

Invariants enforced:
    - Effort values are Decimal, never float.  ``to_effort`` rejects floats
      so binary rounding noise cannot reach the ledger.
    - Rounding to ledger precision is ROUND_HALF_UP everywhere.

Failure modes:
    - ValueError on an invalid month, a float value, or a non-positive
      precision.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from uuid import UUID

EntityId = str | int | UUID

ZERO = Decimal("0")
ONE_PM = Decimal("1")
DEFAULT_PRECISION = Decimal("0.01")


def to_effort(value: Decimal | str | int) -> Decimal:
    """Convert a str/int/Decimal to a Decimal effort value.

    Raises:
        ValueError: for floats, booleans, or unparseable strings.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(
            f"Effort values must be Decimal, str or int, got {type(value).__name__}"
        )
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Cannot parse effort value {value!r}") from exc


def quantize_effort(
    value: Decimal,
    precision: Decimal = DEFAULT_PRECISION,
) -> Decimal:
    """Round an effort value to ledger precision (ROUND_HALF_UP)."""
    if precision <= ZERO:
        raise ValueError(f"Precision must be positive, got {precision}")
    return value.quantize(precision, rounding=ROUND_HALF_UP)


def sum_effort(values) -> Decimal:
    """Sum Decimal effort values starting from an exact zero."""
    return sum(values, ZERO)


@dataclass(frozen=True, slots=True)
class PersonMonth:
    """
    Key for one person in one calendar month.

    Contract:
        Every resolution, lock and batch item is addressed by this key.

    Guarantees:
        - month is in 1..12.
        - Immutable and hashable.
    """

    person_id: EntityId
    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be in 1..12, got {self.month}")
        if self.year < 1:
            raise ValueError(f"Year must be positive, got {self.year}")

    @classmethod
    def of(cls, person_id: EntityId, day: date) -> PersonMonth:
        """Key for the month containing ``day``."""
        return cls(person_id=person_id, year=day.year, month=day.month)

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    @property
    def label(self) -> str:
        """Period label, e.g. ``2025-01``."""
        return f"{self.year}-{self.month:02d}"

    def contains(self, day: date) -> bool:
        return self.first_day <= day <= self.last_day

    def __str__(self) -> str:
        return f"{self.person_id}@{self.label}"


def month_range(start: date, end: date) -> list[date]:
    """First day of every month touched by ``[start, end]``, in order."""
    if end < start:
        return []
    months: list[date] = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        months.append(date(year, month, 1))
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return months
