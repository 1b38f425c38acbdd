"""
Module: tenancy_kernel.store.base
Responsibility: The storage contract the engine is written against.  Any
    backend (in-process dictionaries, a relational database, a document
    store) that offers get / put / query / delete by id plus the two atomic
    primitives below can host the engine.
Architecture position: Kernel > Store.  May import from domain/ and
    exceptions only.  MUST NOT import from services/ or selectors/.

Invariants enforced:
    - No multi-record transaction is offered or assumed.  Each call is
      atomic on its own; sagas in services/ sequence them.
    - History records are append-only: put() of an existing history id,
      compare_and_set() and delete() on HISTORY raise
      ImmutabilityViolationError.
    - UNIQUE_RULES are enforced on every write (UniqueConstraintError).
    - adjust_counter() is a single atomic clamped read-modify-write.

Failure modes:
    - UniqueConstraintError when a write would break a unique rule.
    - PropertyNotFoundError from adjust_counter() for an unknown property.
    - ImmutabilityViolationError on any history mutation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID

from tenancy_kernel.domain.records import (
    Bill,
    HistoryEntry,
    Notification,
    Property,
    RequestStatus,
    StayStatus,
    TenantStay,
    User,
    VerificationRequest,
)


class RecordKind(str, Enum):
    """Kinds of record the store holds."""

    REQUEST = "request"
    STAY = "stay"
    PROPERTY = "property"
    BILL = "bill"
    HISTORY = "history"
    USER = "user"
    NOTIFICATION = "notification"


RECORD_TYPES: dict[RecordKind, type] = {
    RecordKind.REQUEST: VerificationRequest,
    RecordKind.STAY: TenantStay,
    RecordKind.PROPERTY: Property,
    RecordKind.BILL: Bill,
    RecordKind.HISTORY: HistoryEntry,
    RecordKind.USER: User,
    RecordKind.NOTIFICATION: Notification,
}


@dataclass(frozen=True)
class UniqueRule:
    """
    Partial uniqueness: at most one record per ``key_field`` value among
    records whose ``when_field`` equals ``when_value``.
    """
    name: str
    key_field: str
    when_field: str
    when_value: Any

    def key_for(self, record: Any) -> Any | None:
        """Return the uniqueness key for ``record`` or None if the rule doesn't apply."""
        if getattr(record, self.when_field) != self.when_value:
            return None
        return getattr(record, self.key_field)


UNIQUE_RULES: dict[RecordKind, tuple[UniqueRule, ...]] = {
    RecordKind.STAY: (
        UniqueRule(
            name="uq_tenant_stays_one_active",
            key_field="tenant_id",
            when_field="status",
            when_value=StayStatus.ACTIVE,
        ),
    ),
    RecordKind.REQUEST: (
        UniqueRule(
            name="uq_verification_requests_one_pending",
            key_field="tenant_id",
            when_field="status",
            when_value=RequestStatus.PENDING,
        ),
    ),
}


@dataclass(frozen=True)
class CounterUpdate:
    """Outcome of an atomic occupancy adjustment."""
    property_id: UUID
    value: int
    total_units: int
    saturated: bool


class RecordStore(ABC):
    """
    Abstract record store.

    Contract:
        Records are the frozen dataclasses in ``tenancy_kernel.domain.records``.
        Every method is individually atomic.  Nothing spans two calls.

    Non-goals:
        - No transactions across records.
        - No arbitrary predicates: queries filter by field equality so that
          every backend can push them down.
    """

    @abstractmethod
    def get(self, kind: RecordKind, record_id: UUID) -> Any | None:
        """Return the record with ``record_id`` or None."""

    @abstractmethod
    def put(self, kind: RecordKind, record: Any) -> Any:
        """Insert or replace ``record`` (keyed by ``record.id``) and return it as stored."""

    @abstractmethod
    def query(
        self,
        kind: RecordKind,
        *,
        order_by: str | None = None,
        descending: bool = False,
        **equals: Any,
    ) -> list[Any]:
        """Return records whose fields equal every ``equals`` value."""

    @abstractmethod
    def delete(self, kind: RecordKind, record_id: UUID) -> bool:
        """Delete a record.  Returns False if it did not exist."""

    @abstractmethod
    def compare_and_set(
        self,
        kind: RecordKind,
        record_id: UUID,
        expected: dict[str, Any],
        changes: dict[str, Any],
    ) -> Any | None:
        """
        Atomically apply ``changes`` if every ``expected`` field still matches.

        Returns the updated record, or None when the record is missing or
        an expectation failed.
        """

    @abstractmethod
    def adjust_counter(self, property_id: UUID, delta: int) -> CounterUpdate:
        """
        Atomically move ``occupied_units`` by ``delta`` clamped to
        ``[0, total_units]``.  ``saturated`` is True when the clamp bit.
        """

    def first(self, kind: RecordKind, **equals: Any) -> Any | None:
        """Return the first record matching ``equals`` or None."""
        matches = self.query(kind, **equals)
        return matches[0] if matches else None
