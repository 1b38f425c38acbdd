"""Record store contract and its in-memory and SQL implementations."""

from tenancy_kernel.store.base import (
    RECORD_TYPES,
    UNIQUE_RULES,
    CounterUpdate,
    RecordKind,
    RecordStore,
    UniqueRule,
)
from tenancy_kernel.store.memory import MemoryRecordStore
from tenancy_kernel.store.sql import SqlRecordStore

__all__ = [
    "RECORD_TYPES",
    "UNIQUE_RULES",
    "CounterUpdate",
    "RecordKind",
    "RecordStore",
    "UniqueRule",
    "MemoryRecordStore",
    "SqlRecordStore",
]
