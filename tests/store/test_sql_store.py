"""
SqlRecordStore specifics: ORM immutability listeners, integrity error
translation and column types.  Runs against TENANCY_TEST_DATABASE_URL or
in-memory SQLite.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from tenancy_kernel.db.engine import drop_tables, get_session_factory, reset_engine, session_scope
from tenancy_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from tenancy_kernel.domain.records import (
    Bill,
    BillStatus,
    BillType,
    HistoryEntry,
    HistoryStatus,
    HistoryType,
    Property,
    Role,
    StayStatus,
    TenantStay,
    User,
)
from tenancy_kernel.exceptions import (
    ImmutabilityViolationError,
    StoreError,
    UniqueConstraintError,
)
from tenancy_kernel.models import HistoryEntryModel, SequenceCounter
from tenancy_kernel.services.orchestrator import TenancyOrchestrator
from tenancy_kernel.store.base import RecordKind
from tenancy_kernel.store.sql import HISTORY_SEQUENCE, SqlRecordStore

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def seeded(sql_store):
    landlord = sql_store.put(RecordKind.USER, User(id=uuid4(), name="Ravi", role=Role.LANDLORD))
    prop = sql_store.put(
        RecordKind.PROPERTY,
        Property(
            id=uuid4(),
            landlord_id=landlord.id,
            name="Sunny Downtown Apartment",
            total_units=2,
            monthly_rent=Decimal("1200.00"),
        ),
    )
    stay = sql_store.put(
        RecordKind.STAY,
        TenantStay(
            id=uuid4(),
            tenant_id=uuid4(),
            landlord_id=landlord.id,
            property_id=prop.id,
            join_date=T0,
        ),
    )
    return landlord, prop, stay


def _bill(stay, amount="1200.00", **overrides):
    fields = dict(
        id=uuid4(),
        stay_id=stay.id,
        tenant_id=stay.tenant_id,
        landlord_id=stay.landlord_id,
        amount=Decimal(amount),
        bill_type=BillType.ELECTRICITY,
        month="March",
        due_date=date(2024, 3, 10),
        created_at=T0,
        units=Decimal("142.500"),
    )
    fields.update(overrides)
    return Bill(**fields)


class TestColumnTypes:

    def test_bill_round_trip_preserves_types(self, sql_store, seeded):
        _, _, stay = seeded
        bill = sql_store.put(RecordKind.BILL, _bill(stay))
        loaded = sql_store.get(RecordKind.BILL, bill.id)

        assert loaded.amount == Decimal("1200.00")
        assert isinstance(loaded.amount, Decimal)
        assert loaded.units == Decimal("142.500")
        assert loaded.bill_type is BillType.ELECTRICITY
        assert loaded.status is BillStatus.PENDING
        assert loaded.due_date == date(2024, 3, 10)
        assert loaded.created_at == T0
        assert loaded.created_at.tzinfo is not None

    def test_stay_enum_and_uuid_round_trip(self, sql_store, seeded):
        _, prop, stay = seeded
        loaded = sql_store.get(RecordKind.STAY, stay.id)
        assert loaded.status is StayStatus.ACTIVE
        assert loaded.property_id == prop.id
        assert loaded.join_date == T0


class TestIntegrityTranslation:

    def test_partial_unique_index_becomes_unique_constraint_error(self, sql_store, seeded):
        _, prop, stay = seeded
        duplicate = TenantStay(
            id=uuid4(),
            tenant_id=stay.tenant_id,
            landlord_id=stay.landlord_id,
            property_id=prop.id,
            join_date=T0,
        )
        with pytest.raises(UniqueConstraintError):
            sql_store.put(RecordKind.STAY, duplicate)

    def test_check_constraint_becomes_store_error(self, sql_store, seeded):
        _, _, stay = seeded
        with pytest.raises(StoreError) as exc_info:
            sql_store.put(RecordKind.BILL, _bill(stay, amount="0"))
        assert not isinstance(exc_info.value, UniqueConstraintError)
        assert sql_store.query(RecordKind.BILL, stay_id=stay.id) == []

    def test_bill_for_unknown_stay_rejected(self, sql_store, seeded):
        _, _, stay = seeded
        orphan = _bill(stay, stay_id=uuid4())
        with pytest.raises(StoreError):
            sql_store.put(RecordKind.BILL, orphan)


class TestHistorySequence:

    def test_counter_row_tracks_last_sequence(self, sql_store):
        tenant_id = uuid4()
        for i in range(3):
            sql_store.put(
                RecordKind.HISTORY,
                HistoryEntry(
                    id=uuid4(),
                    tenant_id=tenant_id,
                    entry_type=HistoryType.LIGHT_BILL,
                    description=f"bill {i}",
                    occurred_at=T0,
                    created_by=uuid4(),
                    amount=Decimal("310.00"),
                    status=HistoryStatus.PENDING,
                ),
            )
        with session_scope(get_session_factory()) as session:
            counter = session.execute(
                select(SequenceCounter).where(SequenceCounter.name == HISTORY_SEQUENCE)
            ).scalar_one()
            assert counter.current_value == 3

        entries = sql_store.query(RecordKind.HISTORY, order_by="sequence", tenant_id=tenant_id)
        assert [e.sequence for e in entries] == [1, 2, 3]
        assert entries[0].status is HistoryStatus.PENDING


class TestOrmImmutabilityListeners:
    """A raw session cannot change or delete a ledger row either."""

    @pytest.fixture
    def entry_id(self, sql_store):
        entry = sql_store.put(
            RecordKind.HISTORY,
            HistoryEntry(
                id=uuid4(),
                tenant_id=uuid4(),
                entry_type=HistoryType.JOINED,
                description="Tenant verified and joined the property.",
                occurred_at=T0,
                created_by=uuid4(),
            ),
        )
        return entry.id

    def test_update_blocked(self, sql_store, entry_id):
        with pytest.raises(ImmutabilityViolationError):
            with session_scope(get_session_factory()) as session:
                row = session.get(HistoryEntryModel, entry_id)
                row.description = "rewritten"
                session.flush()

        assert sql_store.get(RecordKind.HISTORY, entry_id).description.startswith("Tenant verified")

    def test_delete_blocked(self, sql_store, entry_id):
        with pytest.raises(ImmutabilityViolationError):
            with session_scope(get_session_factory()) as session:
                session.delete(session.get(HistoryEntryModel, entry_id))
                session.flush()

        assert sql_store.get(RecordKind.HISTORY, entry_id) is not None

    def test_unregister_then_register(self, sql_store, entry_id):
        unregister_immutability_listeners()
        try:
            with session_scope(get_session_factory()) as session:
                session.get(HistoryEntryModel, entry_id).description = "migrated"
        finally:
            register_immutability_listeners()

        assert sql_store.get(RecordKind.HISTORY, entry_id).description == "migrated"
        with pytest.raises(ImmutabilityViolationError):
            with session_scope(get_session_factory()) as session:
                session.get(HistoryEntryModel, entry_id).description = "again"


class TestOrchestratorFromConfig:

    def test_builds_sql_backed_engine(self, engine_config, deterministic_clock):
        orchestrator = TenancyOrchestrator.from_config(engine_config, clock=deterministic_clock)
        try:
            assert isinstance(orchestrator._store, SqlRecordStore)
            landlord = orchestrator._store.put(
                RecordKind.USER, User(id=uuid4(), name="Ravi Landlord", role=Role.LANDLORD)
            )
            prop = orchestrator._store.put(
                RecordKind.PROPERTY,
                Property(id=uuid4(), landlord_id=landlord.id, name="Loft", total_units=2),
            )
            assert orchestrator.get_occupancy(prop.id).vacant_units == 2
        finally:
            orchestrator.close()
            drop_tables()
            reset_engine()
