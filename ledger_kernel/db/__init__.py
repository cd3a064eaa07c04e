"""Database layer - engine, base classes and column types."""

from ledger_kernel.db.base import AMOUNT, Base, DecimalString, TrackedBase, UTCDateTime
from ledger_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TrackedBase",
    "DecimalString",
    "UTCDateTime",
    "AMOUNT",
]
