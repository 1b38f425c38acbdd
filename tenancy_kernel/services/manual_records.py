"""
ManualRecordService -- landlord-authored ledger facts.

Landlords append LIGHT_BILL, RENT_PAYMENT and REMARK entries for a tenant
they currently host.  Lifecycle entry types (JOINED, MOVE_OUT, PAYMENT)
are reserved for the engine's own sagas so that every occupancy-affecting
transition and every settlement maps to exactly one entry.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from tenancy_kernel.config import EngineConfig, load_config
from tenancy_kernel.domain.clock import Clock
from tenancy_kernel.domain.identity import Actor, require_actor
from tenancy_kernel.domain.records import (
    LIFECYCLE_HISTORY_TYPES,
    HistoryEntry,
    HistoryStatus,
    HistoryType,
    Role,
    StayStatus,
)
from tenancy_kernel.domain.validation import (
    aware_datetime_field,
    decimal_field,
    enum_field,
    text_field,
)
from tenancy_kernel.exceptions import NotOwnerError, ValidationError
from tenancy_kernel.logging_config import get_logger
from tenancy_kernel.services.base import BaseService
from tenancy_kernel.services.ledger_store import LedgerStore
from tenancy_kernel.services.notifier import Notifier, StoreNotifier, notify_from_template
from tenancy_kernel.services.saga import Saga
from tenancy_kernel.store.base import RecordKind, RecordStore

logger = get_logger("services.manual_records")


class ManualRecordService(BaseService):
    """Appends landlord-authored history entries and notifies the tenant."""

    def __init__(
        self,
        store: RecordStore,
        clock: Clock | None = None,
        ledger: LedgerStore | None = None,
        notifier: Notifier | None = None,
        config: EngineConfig | None = None,
    ):
        super().__init__(store, clock)
        self._ledger = ledger or LedgerStore(store, self._clock)
        self._notifier = notifier or StoreNotifier(store, self._clock)
        self._config = config or load_config()

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
        """
        Append a manual record for a tenant with an ACTIVE stay owned by the actor.

        Raises:
            ValidationError: unknown or reserved entry type, blank
                description, bad amount/units/status.
            NotOwnerError: the actor does not currently host the tenant.
        """
        actor = require_actor(actor, "add_record", Role.LANDLORD)

        errors: list[dict[str, str]] = []
        entry_type = enum_field(errors, "entry_type", HistoryType, entry_type)
        if entry_type in LIFECYCLE_HISTORY_TYPES:
            errors.append({
                "field": "entry_type",
                "message": f"{entry_type.value} is recorded by the engine only",
            })
        description = text_field(errors, "description", description)
        occurred_at = aware_datetime_field(errors, "occurred_at", occurred_at)
        amount = decimal_field(errors, "amount", amount, required=False)
        units = decimal_field(errors, "units", units, required=False)
        status = enum_field(errors, "status", HistoryStatus, status, required=False)
        if errors:
            raise ValidationError(errors)

        stay = self.store.first(
            RecordKind.STAY,
            tenant_id=tenant_id,
            landlord_id=actor.actor_id,
            status=StayStatus.ACTIVE,
        )
        if stay is None:
            raise NotOwnerError("Tenant", tenant_id, actor.actor_id)

        saga = Saga("add_record")
        entry = saga.step(
            "append_record",
            self._ledger.record,
            tenant_id,
            entry_type,
            description,
            actor.actor_id,
            occurred_at=occurred_at,
            amount=amount,
            month=month,
            year=year,
            units=units,
            status=status,
        )
        self._notify(saga, entry)
        return entry

    def _notify(self, saga: Saga, entry: HistoryEntry) -> None:
        if entry.entry_type == HistoryType.LIGHT_BILL:
            status = entry.status.value if entry.status else HistoryStatus.PENDING.value
            template = self._config.template("record_light_bill")
            values = {"month": entry.month or "", "year": entry.year or "", "status": status}
        elif entry.entry_type == HistoryType.RENT_PAYMENT:
            status = entry.status.value if entry.status else "received"
            template = self._config.template("record_rent_payment")
            values = {"month": entry.month or "the period", "status": status}
        else:
            status = None
            template = self._config.template("record_added")
            values = {"label": entry.entry_type.value.lower().replace("_", " ")}

        saga.notify(
            "notify_tenant",
            notify_from_template,
            self._notifier,
            template,
            entry.tenant_id,
            Role.TENANT,
            type_status=status,
            **values,
        )
