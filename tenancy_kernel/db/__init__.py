"""Database layer - engine, base classes, column types and ledger immutability."""

from tenancy_kernel.db.base import UUID, Base, UTCDateTime, UUIDString
from tenancy_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from tenancy_kernel.db.types import LongText, Money, NameText, ShortText, Units, enum_type

__all__ = [
    "init_engine_from_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "drop_tables",
    "Base",
    "UUIDString",
    "UTCDateTime",
    "UUID",
    "Money",
    "Units",
    "ShortText",
    "NameText",
    "LongText",
    "enum_type",
]
