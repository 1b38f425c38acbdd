"""
Module: tenancy_kernel.store.sql
Responsibility: SQLAlchemy-backed implementation of RecordStore.  Each
    contract call runs in its own short session_scope() transaction, so the
    engine's "no multi-record atomicity" assumption holds on a real database
    exactly as it does in memory.
Architecture position: Kernel > Store.  May import from db/, models/,
    domain/ and exceptions.  MUST NOT import from services/ or selectors/.

Invariants enforced:
    - Partial unique indexes (uq_tenant_stays_one_active,
      uq_verification_requests_one_pending) reject duplicates at the point
      of creation; IntegrityError is translated to UniqueConstraintError.
    - compare_and_set() is one conditional UPDATE; rowcount 0 means the
      expectation failed.
    - adjust_counter() is one conditional UPDATE bounded by total_units
      (or 0); when the bound is hit a clamp UPDATE pins the counter.
    - History rows take their ``sequence`` from a locked counter row in the
      same transaction as the INSERT and are never updated or deleted.

Failure modes:
    - UniqueConstraintError on a partial unique index violation.
    - StoreError for any other integrity failure.
    - PropertyNotFoundError from adjust_counter() for an unknown property.
    - ImmutabilityViolationError on any history mutation.
"""

from __future__ import annotations

from dataclasses import fields
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from tenancy_kernel.db.engine import session_scope
from tenancy_kernel.db.immutability import register_immutability_listeners
from tenancy_kernel.exceptions import (
    ImmutabilityViolationError,
    PropertyNotFoundError,
    StoreError,
    UniqueConstraintError,
)
from tenancy_kernel.logging_config import get_logger
from tenancy_kernel.models import (
    BillModel,
    HistoryEntryModel,
    NotificationModel,
    PropertyModel,
    SequenceCounter,
    TenantStayModel,
    UserModel,
    VerificationRequestModel,
)
from tenancy_kernel.store.base import (
    RECORD_TYPES,
    UNIQUE_RULES,
    CounterUpdate,
    RecordKind,
    RecordStore,
)

logger = get_logger("store.sql")

MODELS: dict[RecordKind, type] = {
    RecordKind.REQUEST: VerificationRequestModel,
    RecordKind.STAY: TenantStayModel,
    RecordKind.PROPERTY: PropertyModel,
    RecordKind.BILL: BillModel,
    RecordKind.HISTORY: HistoryEntryModel,
    RecordKind.USER: UserModel,
    RecordKind.NOTIFICATION: NotificationModel,
}

HISTORY_SEQUENCE = "history_entry"


def _field_names(kind: RecordKind) -> list[str]:
    return [f.name for f in fields(RECORD_TYPES[kind])]


def _to_record(kind: RecordKind, row: Any) -> Any:
    record_cls = RECORD_TYPES[kind]
    return record_cls(**{name: getattr(row, name) for name in _field_names(kind)})


def _history_immutable(record_id: Any, reason: str) -> ImmutabilityViolationError:
    return ImmutabilityViolationError(
        entity_type="HistoryEntry",
        entity_id=str(record_id),
        reason=reason,
    )


def _next_sequence(session: Session, name: str) -> int:
    """
    Allocate the next value of a named counter inside the caller's transaction.

    SELECT ... FOR UPDATE serializes allocators on PostgreSQL; SQLite holds a
    database-wide write lock for the transaction instead.
    """
    counter = session.execute(
        select(SequenceCounter)
        .where(SequenceCounter.name == name)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()

    if counter is None:
        counter = SequenceCounter(name=name, current_value=0)
        session.add(counter)

    counter.current_value += 1
    session.flush()
    logger.debug(
        "sequence_allocated",
        extra={"sequence_name": name, "value": counter.current_value},
    )
    return counter.current_value


class SqlRecordStore(RecordStore):
    """
    RecordStore over the SQLAlchemy models.

    Args:
        session_factory: sessionmaker to use.  Defaults to the module-level
            factory configured by ``init_engine_from_url``.
    """

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        self._session_factory = session_factory
        register_immutability_listeners()

    def _scope(self):
        return session_scope(self._session_factory)

    def _translate(self, kind: RecordKind, record_id: Any, exc: IntegrityError) -> StoreError:
        message = str(exc.orig)
        rules = UNIQUE_RULES.get(kind, ())
        if "unique" in message.lower() or "duplicate" in message.lower():
            for rule in rules:
                if rule.name in message:
                    return UniqueConstraintError(kind.value, rule.name, record_id)
            # SQLite names the columns, not the index
            if len(rules) == 1:
                return UniqueConstraintError(kind.value, rules[0].name, record_id)
        logger.error(
            "store_integrity_error",
            extra={"kind": kind.value, "record_id": str(record_id), "detail": message},
        )
        return StoreError(f"Integrity error writing {kind.value} {record_id}: {message}")

    # ------------------------------------------------------------------
    # RecordStore
    # ------------------------------------------------------------------

    def get(self, kind: RecordKind, record_id: UUID) -> Any | None:
        with self._scope() as session:
            row = session.get(MODELS[kind], record_id)
            return _to_record(kind, row) if row is not None else None

    def put(self, kind: RecordKind, record: Any) -> Any:
        model = MODELS[kind]
        values = {name: getattr(record, name) for name in _field_names(kind)}
        try:
            with self._scope() as session:
                row = session.get(model, record.id)
                if kind == RecordKind.HISTORY:
                    if row is not None:
                        raise _history_immutable(
                            record.id,
                            "History entries are append-only and cannot be replaced",
                        )
                    values["sequence"] = _next_sequence(session, HISTORY_SEQUENCE)
                    row = model(**values)
                    session.add(row)
                elif row is None:
                    row = model(**values)
                    session.add(row)
                else:
                    for name, value in values.items():
                        setattr(row, name, value)
                session.flush()
                return _to_record(kind, row)
        except IntegrityError as exc:
            raise self._translate(kind, record.id, exc) from exc

    def query(
        self,
        kind: RecordKind,
        *,
        order_by: str | None = None,
        descending: bool = False,
        **equals: Any,
    ) -> list[Any]:
        model = MODELS[kind]
        stmt = select(model).filter_by(**equals)
        if order_by is not None:
            column = getattr(model, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        with self._scope() as session:
            return [_to_record(kind, row) for row in session.execute(stmt).scalars()]

    def delete(self, kind: RecordKind, record_id: UUID) -> bool:
        if kind == RecordKind.HISTORY:
            raise _history_immutable(record_id, "History entries cannot be deleted")
        with self._scope() as session:
            row = session.get(MODELS[kind], record_id)
            if row is None:
                return False
            session.delete(row)
            return True

    def compare_and_set(
        self,
        kind: RecordKind,
        record_id: UUID,
        expected: dict[str, Any],
        changes: dict[str, Any],
    ) -> Any | None:
        if kind == RecordKind.HISTORY:
            raise _history_immutable(record_id, "History entries are immutable")
        model = MODELS[kind]
        conditions = [model.id == record_id]
        conditions.extend(getattr(model, name) == value for name, value in expected.items())
        stmt = (
            update(model)
            .where(*conditions)
            .values(**changes)
            .execution_options(synchronize_session=False)
        )
        try:
            with self._scope() as session:
                result = session.execute(stmt)
                if result.rowcount != 1:
                    return None
                row = session.execute(
                    select(model)
                    .where(model.id == record_id)
                    .execution_options(populate_existing=True)
                ).scalar_one()
                return _to_record(kind, row)
        except IntegrityError as exc:
            raise self._translate(kind, record_id, exc) from exc

    def adjust_counter(self, property_id: UUID, delta: int) -> CounterUpdate:
        occupied = PropertyModel.occupied_units
        total = PropertyModel.total_units
        with self._scope() as session:
            saturated = False
            if delta != 0:
                bound = occupied + delta <= total if delta > 0 else occupied + delta >= 0
                result = session.execute(
                    update(PropertyModel)
                    .where(PropertyModel.id == property_id, bound)
                    .values(occupied_units=occupied + delta)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    clamped = session.execute(
                        update(PropertyModel)
                        .where(PropertyModel.id == property_id)
                        .values(occupied_units=total if delta > 0 else 0)
                        .execution_options(synchronize_session=False)
                    )
                    if clamped.rowcount == 0:
                        raise PropertyNotFoundError(property_id)
                    saturated = True

            row = session.execute(
                select(PropertyModel.occupied_units, PropertyModel.total_units)
                .where(PropertyModel.id == property_id)
            ).one_or_none()
            if row is None:
                raise PropertyNotFoundError(property_id)
            return CounterUpdate(
                property_id=property_id,
                value=row.occupied_units,
                total_units=row.total_units,
                saturated=saturated,
            )
