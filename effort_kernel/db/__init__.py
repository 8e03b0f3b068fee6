"""Database layer - engine and base classes."""

from effort_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from effort_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    reset_engine,
    session_scope,
)

__all__ = [
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "create_tables",
    "drop_tables",
    "reset_engine",
    "session_scope",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
]
