"""
Tenancy Orchestrator - the facade request handlers call.

The Orchestrator ties together:
- TenancyRegistry: verification requests and stays
- OccupancyCounter: bounded per-property counters
- BillLedger: bill issue, settlement and correction
- LedgerStore: append-only tenant history
- ManualRecordService: landlord-authored history entries
- Notifier / NotificationInbox: fire-and-forget notifications
- TenancySelector: read accessors

Every public call runs inside a LogContext carrying a fresh correlation id,
the operation name and the actor, so each log line of a saga can be tied
back to the request that caused it.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from tenancy_kernel.config import EngineConfig, load_config
from tenancy_kernel.domain.clock import Clock, SystemClock
from tenancy_kernel.domain.identity import Actor
from tenancy_kernel.domain.records import (
    Bill,
    BillType,
    Decision,
    HistoryEntry,
    HistoryStatus,
    HistoryType,
    LandlordTenantView,
    Notification,
    PaymentDetails,
    PropertyOccupancy,
    TenantIdentity,
    TenantStay,
    VerificationRequest,
)
from tenancy_kernel.logging_config import LogContext, get_logger
from tenancy_kernel.selectors.tenancy_selector import TenancySelector
from tenancy_kernel.services.bill_ledger import BillLedger
from tenancy_kernel.services.ledger_store import LedgerStore
from tenancy_kernel.services.manual_records import ManualRecordService
from tenancy_kernel.services.notifier import (
    BackgroundNotifier,
    NotificationInbox,
    Notifier,
    StoreNotifier,
)
from tenancy_kernel.services.occupancy_counter import OccupancyCounter
from tenancy_kernel.services.tenancy_registry import TenancyRegistry
from tenancy_kernel.store.base import RecordStore

logger = get_logger("services.orchestrator")


class TenancyOrchestrator:
    """
    Orchestrates the tenancy lifecycle and billing ledger.

    Each mutating call is a best-effort saga across independent records.
    There is no multi-record transaction: a failure after the first write
    raises PartialFailureError naming the completed steps.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Clock | None = None,
        notifier: Notifier | None = None,
        config: EngineConfig | None = None,
    ):
        """
        Initialize the Tenancy Orchestrator.

        Args:
            store: Record store for every engine record.
            clock: Clock for timestamps. Defaults to SystemClock.
            notifier: Notification sink.  Defaults to StoreNotifier, wrapped in
                a BackgroundNotifier when ``config.async_notifications`` is set.
            config: Engine configuration. Defaults to ``load_config()``.
        """
        self._store = store
        self._clock = clock or SystemClock()
        self._config = config or load_config()

        notifier = notifier or StoreNotifier(store, self._clock)
        if self._config.async_notifications and not isinstance(notifier, BackgroundNotifier):
            notifier = BackgroundNotifier(notifier, self._config.notification_workers)
        self._notifier = notifier

        self._ledger = LedgerStore(store, self._clock)
        self._occupancy = OccupancyCounter(store, self._clock)
        self._registry = TenancyRegistry(
            store,
            self._clock,
            occupancy=self._occupancy,
            ledger=self._ledger,
            notifier=self._notifier,
            config=self._config,
        )
        self._bills = BillLedger(
            store,
            self._clock,
            ledger=self._ledger,
            notifier=self._notifier,
            config=self._config,
        )
        self._records = ManualRecordService(
            store,
            self._clock,
            ledger=self._ledger,
            notifier=self._notifier,
            config=self._config,
        )
        self._inbox = NotificationInbox(store, self._clock)
        self._selector = TenancySelector(store, self._clock)

    @classmethod
    def from_config(
        cls,
        config: EngineConfig | None = None,
        clock: Clock | None = None,
    ) -> TenancyOrchestrator:
        """Build an orchestrator over a SqlRecordStore at ``config.database_url``."""
        from tenancy_kernel.db.engine import create_tables, init_engine_from_url
        from tenancy_kernel.store.sql import SqlRecordStore

        config = config or load_config()
        init_engine_from_url(config.database_url)
        create_tables()
        return cls(SqlRecordStore(), clock=clock, config=config)

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    def close(self) -> None:
        """Wait for background notifications and stop their workers."""
        if isinstance(self._notifier, BackgroundNotifier):
            self._notifier.drain()
            self._notifier.shutdown()

    def _context(self, operation: str, actor: Actor | None, **fields: Any):
        return LogContext.bind(
            correlation_id=uuid4(),
            operation=operation,
            actor_id=actor.actor_id if actor is not None else None,
            **fields,
        )

    # ------------------------------------------------------------------
    # Requests and stays
    # ------------------------------------------------------------------

    def submit_request(
        self,
        actor: Actor,
        property_id: UUID,
        identity: TenantIdentity,
        payment: PaymentDetails | None = None,
        remarks: str | None = None,
    ) -> VerificationRequest:
        tenant_id = actor.actor_id if actor is not None else None
        with self._context("submit_request", actor, tenant_id=tenant_id, property_id=property_id):
            return self._registry.submit_request(actor, property_id, identity, payment, remarks)

    def decide_request(
        self,
        actor: Actor,
        request_id: UUID,
        decision: Decision | str,
        remarks: str | None = None,
        joining_date: datetime | None = None,
        extra: Mapping[str, Any] | None = None,
    ) -> VerificationRequest:
        with self._context("decide_request", actor):
            return self._registry.decide_request(
                actor, request_id, decision, remarks, joining_date, extra
            )

    def end_stay(self, actor: Actor, stay_id: UUID, revoke_access: bool = False) -> TenantStay:
        with self._context("end_stay", actor):
            return self._registry.end_stay(actor, stay_id, revoke_access)

    def end_stay_direct(self, actor: Actor, stay_id: UUID) -> TenantStay:
        with self._context("end_stay_direct", actor):
            return self._registry.end_stay_direct(actor, stay_id)

    # ------------------------------------------------------------------
    # Bills
    # ------------------------------------------------------------------

    def issue_bill(
        self,
        actor: Actor,
        tenant_id: UUID,
        stay_id: UUID,
        amount: Decimal | int | str,
        bill_type: BillType | str,
        due_date: date | str,
        month: str,
        units: Decimal | int | str | None = None,
    ) -> Bill:
        with self._context("issue_bill", actor, tenant_id=tenant_id):
            return self._bills.issue_bill(
                actor, tenant_id, stay_id, amount, bill_type, due_date, month, units
            )

    def settle_bill(self, actor: Actor, bill_id: UUID) -> Bill:
        with self._context("settle_bill", actor):
            return self._bills.settle_bill(actor, bill_id)

    def delete_bill(self, actor: Actor, bill_id: UUID) -> None:
        with self._context("delete_bill", actor):
            self._bills.delete_bill(actor, bill_id)

    # ------------------------------------------------------------------
    # Manual ledger records
    # ------------------------------------------------------------------

    def add_record(
        self,
        actor: Actor,
        tenant_id: UUID,
        entry_type: HistoryType | str,
        description: str,
        occurred_at: datetime | None = None,
        amount: Decimal | int | str | None = None,
        month: str | None = None,
        year: str | None = None,
        units: Decimal | int | str | None = None,
        status: HistoryStatus | str | None = None,
    ) -> HistoryEntry:
        with self._context("add_record", actor, tenant_id=tenant_id):
            return self._records.add_record(
                actor,
                tenant_id,
                entry_type,
                description,
                occurred_at=occurred_at,
                amount=amount,
                month=month,
                year=year,
                units=units,
                status=status,
            )

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def list_notifications(self, actor: Actor) -> list[Notification]:
        return self._inbox.list_for(actor)

    def mark_notification_read(self, actor: Actor, notification_id: UUID) -> Notification:
        with self._context("mark_notification_read", actor):
            return self._inbox.mark_read(actor, notification_id)

    def mark_all_notifications_read(self, actor: Actor) -> int:
        with self._context("mark_all_notifications_read", actor):
            return self._inbox.mark_all_read(actor)

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def get_active_stay(self, tenant_id: UUID) -> TenantStay | None:
        return self._selector.get_active_stay(tenant_id)

    def get_occupancy(self, property_id: UUID) -> PropertyOccupancy:
        return self._selector.get_occupancy(property_id)

    def list_history(self, tenant_id: UUID) -> list[HistoryEntry]:
        return self._selector.list_history(tenant_id)

    def list_bills(
        self,
        tenant_id: UUID | None = None,
        landlord_id: UUID | None = None,
    ) -> list[Bill]:
        return self._selector.list_bills(tenant_id=tenant_id, landlord_id=landlord_id)

    def list_landlord_tenants(self, landlord_id: UUID) -> list[LandlordTenantView]:
        return self._selector.list_landlord_tenants(landlord_id)
