"""
EngineSettings schema.

Defines the typed settings the overload engine and its ledger adapters run
with.  YAML files are parsed into this type by the loader; nothing else
reads the YAML.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

# ---------------------------------------------------------------------------
# Known keys per YAML section
# ---------------------------------------------------------------------------

SECTION_KEYS: dict[str, tuple[str, ...]] = {
    "engine": ("precision", "max_value", "residual_tolerance"),
    "ledger": ("confirmed_travel_status", "out_of_contract_budget"),
    "concurrency": ("lock_blocking",),
}


@dataclass(frozen=True)
class EngineSettings:
    """Settings of overload resolution.

    Attributes:
        precision: Ledger precision effort values are rounded to.
        max_value: Largest effort value a cell can store.
        confirmed_travel_status: Travel charge status that counts towards a
            project's travel floor (matched case-insensitively).
        out_of_contract_budget: Budget reported for months flagged
            out-of-contract by the calendar service.
        residual_tolerance: Largest drift between persisted total and budget
            that is still reported as a note rather than a defect.
        lock_blocking: Whether a second resolution of the same person-month
            waits (True) or fails fast (False).
        checksum: SHA-256 of the canonical source data.
    """

    precision: Decimal = Decimal("0.01")
    max_value: Decimal = Decimal("9.99")
    confirmed_travel_status: str = "Confirmed"
    out_of_contract_budget: Decimal = Decimal("1.0")
    residual_tolerance: Decimal = Decimal("0.01")
    lock_blocking: bool = True
    checksum: str = ""

    def __post_init__(self) -> None:
        if self.precision <= Decimal("0"):
            raise ValueError(f"precision must be positive, got {self.precision}")
        if self.max_value <= Decimal("0"):
            raise ValueError(f"max_value must be positive, got {self.max_value}")
        if self.out_of_contract_budget < Decimal("0"):
            raise ValueError(
                f"out_of_contract_budget cannot be negative, got {self.out_of_contract_budget}"
            )
        if self.residual_tolerance < Decimal("0"):
            raise ValueError(
                f"residual_tolerance cannot be negative, got {self.residual_tolerance}"
            )
        if not self.confirmed_travel_status:
            raise ValueError("confirmed_travel_status cannot be empty")
