"""Services for the effort kernel (write side)."""

from effort_kernel.services.base import BaseService
from effort_kernel.services.sql_ledger import SqlEffortLedger

__all__ = [
    "BaseService",
    "SqlEffortLedger",
]
