"""
MemoryRecordStore -- in-process implementation of RecordStore.

Responsibility:
    Holds records in per-kind dictionaries guarded by a single re-entrant
    lock.  Used by the test suite and by embedders that keep state in a
    JSON file or similar and only need the engine's rules.

Invariants enforced:
    - UNIQUE_RULES are checked under the lock on every write, so the
      check-then-insert for ACTIVE stays is race free within the process.
    - History entries receive a monotonic ``sequence`` on first insert and
      can never be replaced, compare-and-set or deleted.
    - adjust_counter() performs its read-modify-write under the lock.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Any
from uuid import UUID

from tenancy_kernel.exceptions import (
    ImmutabilityViolationError,
    PropertyNotFoundError,
    UniqueConstraintError,
)
from tenancy_kernel.logging_config import get_logger
from tenancy_kernel.store.base import (
    UNIQUE_RULES,
    CounterUpdate,
    RecordKind,
    RecordStore,
)

logger = get_logger("store.memory")


class MemoryRecordStore(RecordStore):
    """Dictionary-backed record store."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._records: dict[RecordKind, dict[UUID, Any]] = {
            kind: {} for kind in RecordKind
        }
        self._history_sequence = 0

    # ------------------------------------------------------------------
    # Internal helpers (caller holds the lock)
    # ------------------------------------------------------------------

    def _check_unique(self, kind: RecordKind, record: Any) -> None:
        for rule in UNIQUE_RULES.get(kind, ()):
            key = rule.key_for(record)
            if key is None:
                continue
            for other in self._records[kind].values():
                if other.id != record.id and rule.key_for(other) == key:
                    raise UniqueConstraintError(kind.value, rule.name, record.id)

    def _write(self, kind: RecordKind, record: Any) -> Any:
        table = self._records[kind]
        if kind == RecordKind.HISTORY:
            if record.id in table:
                raise ImmutabilityViolationError(
                    entity_type="HistoryEntry",
                    entity_id=str(record.id),
                    reason="History entries are append-only and cannot be replaced",
                )
            self._history_sequence += 1
            record = replace(record, sequence=self._history_sequence)
        self._check_unique(kind, record)
        table[record.id] = record
        return record

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------

    def get(self, kind: RecordKind, record_id: UUID) -> Any | None:
        with self._lock:
            return self._records[kind].get(record_id)

    def put(self, kind: RecordKind, record: Any) -> Any:
        with self._lock:
            return self._write(kind, record)

    def query(
        self,
        kind: RecordKind,
        *,
        order_by: str | None = None,
        descending: bool = False,
        **equals: Any,
    ) -> list[Any]:
        with self._lock:
            matches = [
                r for r in self._records[kind].values()
                if all(getattr(r, field) == value for field, value in equals.items())
            ]
        if order_by is not None:
            matches.sort(key=lambda r: getattr(r, order_by), reverse=descending)
        elif descending:
            matches.reverse()
        return matches

    def delete(self, kind: RecordKind, record_id: UUID) -> bool:
        if kind == RecordKind.HISTORY:
            raise ImmutabilityViolationError(
                entity_type="HistoryEntry",
                entity_id=str(record_id),
                reason="History entries cannot be deleted",
            )
        with self._lock:
            return self._records[kind].pop(record_id, None) is not None

    def compare_and_set(
        self,
        kind: RecordKind,
        record_id: UUID,
        expected: dict[str, Any],
        changes: dict[str, Any],
    ) -> Any | None:
        if kind == RecordKind.HISTORY:
            raise ImmutabilityViolationError(
                entity_type="HistoryEntry",
                entity_id=str(record_id),
                reason="History entries are immutable",
            )
        with self._lock:
            current = self._records[kind].get(record_id)
            if current is None:
                return None
            if any(getattr(current, f) != v for f, v in expected.items()):
                return None
            updated = replace(current, **changes)
            self._check_unique(kind, updated)
            self._records[kind][record_id] = updated
            return updated

    def adjust_counter(self, property_id: UUID, delta: int) -> CounterUpdate:
        with self._lock:
            prop = self._records[RecordKind.PROPERTY].get(property_id)
            if prop is None:
                raise PropertyNotFoundError(property_id)
            target = prop.occupied_units + delta
            value = max(0, min(prop.total_units, target))
            self._records[RecordKind.PROPERTY][property_id] = replace(
                prop, occupied_units=value
            )
            return CounterUpdate(
                property_id=property_id,
                value=value,
                total_units=prop.total_units,
                saturated=value != target,
            )
