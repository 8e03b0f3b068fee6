"""
Configuration Loader (``effort_config.loader``).

Responsibility
--------------
Loads the engine settings YAML file and parses it into a typed
``EngineSettings``.  The single public entry point for runtime settings is
``effort_config.get_active_settings()``.

Invariants enforced
-------------------
* Unknown sections or keys raise ``ValueError``; a typo never silently
  falls back to a default.
* Decimal settings are parsed from their string form, never via float.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the parsed
  source data.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from effort_config.schema import SECTION_KEYS, EngineSettings


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")
    return data


def parse_decimal(name: str, value: Any) -> Decimal:
    """Parse a Decimal setting from a YAML scalar."""
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a decimal, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a decimal, got {value!r}") from exc


def parse_bool(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be true or false, got {value!r}")
    return value


def parse_settings(data: dict[str, Any]) -> EngineSettings:
    """
    Parse ``EngineSettings`` from the loaded YAML mapping.

    The mapping may carry a ``version`` key and the sections listed in
    ``SECTION_KEYS``; every omitted key keeps its default.

    Raises:
        ValueError: on unknown sections/keys or invalid values.
    """
    unknown_sections = set(data) - set(SECTION_KEYS) - {"version"}
    if unknown_sections:
        raise ValueError(f"Unknown settings sections: {sorted(unknown_sections)}")

    kwargs: dict[str, Any] = {}
    for section, keys in SECTION_KEYS.items():
        values = data.get(section) or {}
        if not isinstance(values, dict):
            raise ValueError(f"Settings section {section!r} must be a mapping")
        unknown = set(values) - set(keys)
        if unknown:
            raise ValueError(f"Unknown keys in section {section!r}: {sorted(unknown)}")
        kwargs.update(values)

    for name in ("precision", "max_value", "residual_tolerance", "out_of_contract_budget"):
        if name in kwargs:
            kwargs[name] = parse_decimal(name, kwargs[name])
    if "lock_blocking" in kwargs:
        kwargs["lock_blocking"] = parse_bool("lock_blocking", kwargs["lock_blocking"])
    if "confirmed_travel_status" in kwargs:
        kwargs["confirmed_travel_status"] = str(kwargs["confirmed_travel_status"])

    return EngineSettings(checksum=compute_checksum(data), **kwargs)


def load_settings(path: Path) -> EngineSettings:
    """Load and parse a settings file."""
    return parse_settings(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
