"""
LedgerStore -- append-only per-tenant history.

Responsibility:
    Appends HistoryEntry facts and lists them for a tenant in insertion
    order.  No update or delete is exposed here, and the store refuses both
    for history records.

Architecture position:
    Kernel > Services.  Called by the registry and bill ledger as the
    ledger step of each saga.

Invariants enforced:
    - Append-only: entries are immutable once appended.
    - Insertion order is the canonical order (store-assigned ``sequence``).

Failure modes:
    - ImmutabilityViolationError if an entry id is appended twice.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from tenancy_kernel.domain.records import HistoryEntry, HistoryStatus, HistoryType
from tenancy_kernel.logging_config import get_logger
from tenancy_kernel.services.base import BaseService
from tenancy_kernel.store.base import RecordKind

logger = get_logger("services.ledger_store")


class LedgerStore(BaseService):
    """Append-only access to the tenant ledger."""

    def append(self, entry: HistoryEntry) -> HistoryEntry:
        """
        Append ``entry`` and return it as stored (with its ``sequence``).

        Raises:
            ImmutabilityViolationError: An entry with this id already exists.
        """
        stored = self.store.put(RecordKind.HISTORY, entry)
        logger.info(
            "history_appended",
            extra={
                "entry_id": str(stored.id),
                "tenant_id": str(stored.tenant_id),
                "entry_type": stored.entry_type.value,
                "sequence": stored.sequence,
            },
        )
        return stored

    def record(
        self,
        tenant_id: UUID,
        entry_type: HistoryType,
        description: str,
        created_by: UUID,
        occurred_at: datetime | None = None,
        amount: Decimal | None = None,
        month: str | None = None,
        year: str | None = None,
        units: Decimal | None = None,
        status: HistoryStatus | None = None,
    ) -> HistoryEntry:
        """Build a new entry stamped by the clock and append it."""
        return self.append(
            HistoryEntry(
                id=uuid4(),
                tenant_id=tenant_id,
                entry_type=entry_type,
                description=description,
                occurred_at=occurred_at or self._clock.now(),
                created_by=created_by,
                amount=amount,
                month=month,
                year=year,
                units=units,
                status=status,
            )
        )

    def list_by_tenant(self, tenant_id: UUID) -> list[HistoryEntry]:
        """Return the tenant's entries in insertion order."""
        return self.store.query(RecordKind.HISTORY, order_by="sequence", tenant_id=tenant_id)
