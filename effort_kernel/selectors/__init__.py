"""Read-only selectors (query side)."""

from effort_kernel.selectors.base import BaseSelector
from effort_kernel.selectors.effort_selector import EffortRow, EffortSelector

__all__ = [
    "BaseSelector",
    "EffortRow",
    "EffortSelector",
]
