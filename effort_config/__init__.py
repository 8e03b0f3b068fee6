"""
effort_config -- single public entrypoint for engine settings.

Responsibility:
    Provides the ONLY way to obtain settings at runtime through
    ``get_active_settings()``.  No other component reads the settings file
    or the ``EFFORT_CONFIG_PATH`` environment variable directly.

Architecture position:
    Configuration -- sits above ``effort_kernel`` and below
    ``effort_services``.  The kernel MUST NEVER import from
    ``effort_config``; services pass the relevant values down explicitly.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``ValueError`` -- unknown keys or invalid values.

Audit relevance:
    Every successful ``get_active_settings()`` call emits an
    ``EFFORT_CONFIG_TRACE`` log entry with the source path and checksum,
    tying each resolution run to the exact settings it used.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from effort_config.loader import load_settings
from effort_config.schema import EngineSettings

_logger = logging.getLogger("effort_kernel.config")

_DEFAULT_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

CONFIG_PATH_ENV = "EFFORT_CONFIG_PATH"


def get_active_settings(config_path: Path | str | None = None) -> EngineSettings:
    """The ONLY public settings entrypoint.

    Resolution order for the file: ``config_path`` argument, then the
    ``EFFORT_CONFIG_PATH`` environment variable, then the packaged
    ``settings.yaml``.

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        ValueError: If the file fails validation.
    """
    if config_path is None:
        config_path = os.environ.get(CONFIG_PATH_ENV) or _DEFAULT_SETTINGS_PATH
    path = Path(config_path)

    settings = load_settings(path)

    _logger.info(
        "EFFORT_CONFIG_TRACE",
        extra={
            "trace_type": "EFFORT_CONFIG_TRACE",
            "config_path": str(path),
            "checksum": settings.checksum,
            "precision": str(settings.precision),
            "confirmed_travel_status": settings.confirmed_travel_status,
            "lock_blocking": settings.lock_blocking,
        },
    )
    return settings


__all__ = [
    "CONFIG_PATH_ENV",
    "EngineSettings",
    "get_active_settings",
]
