"""Database layer - engine, declarative base, immutability and repository."""

from splitbill_kernel.db.base import Base, GroupScoped, UTCDateTime, UUIDString
from splitbill_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)

__all__ = [
    "Base",
    "GroupScoped",
    "UTCDateTime",
    "UUIDString",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "session_scope",
]
