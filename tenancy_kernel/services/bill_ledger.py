"""
BillLedger -- bills issued against a stay and their settlement.

Responsibility:
    Issues bills for a tenant's ACTIVE stay, settles them exactly once and
    deletes them as landlord corrections.  Settlement appends a PAYMENT
    ledger entry; issue and delete do not.

Architecture position:
    Kernel > Services.  Called by TenancyOrchestrator.

Invariants enforced:
    - SINGLE_SETTLEMENT: an unpaid bill (PENDING, or OVERDUE when a caller
      stored it) moves to PAID through a store compare-and-set on its
      current status, so two concurrent settlements cannot both succeed
      and a settled bill's ``paid_at`` never changes.
    - The engine never stores OVERDUE itself (see ``Bill.as_of``).

Failure modes:
    - ValidationError for a non-positive amount, unknown type or bad date.
    - BillNotFoundError / StayNotFoundError, NotOwnerError,
      BillAlreadyPaidError, StayNotActiveError, NoActiveStayError.
    - PartialFailureError when the ledger append fails after the bill was
      marked paid.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from tenancy_kernel.config import EngineConfig, load_config
from tenancy_kernel.domain.clock import Clock
from tenancy_kernel.domain.identity import Actor, require_actor
from tenancy_kernel.domain.records import (
    Bill,
    BillStatus,
    BillType,
    HistoryStatus,
    HistoryType,
    Role,
)
from tenancy_kernel.domain.validation import date_field, decimal_field, enum_field, text_field
from tenancy_kernel.domain.workflow import BILL_WORKFLOW
from tenancy_kernel.exceptions import (
    BillAlreadyPaidError,
    BillNotFoundError,
    NoActiveStayError,
    NotOwnerError,
    StayNotActiveError,
    StayNotFoundError,
    ValidationError,
)
from tenancy_kernel.invariants import KernelInvariant
from tenancy_kernel.logging_config import get_logger
from tenancy_kernel.services.base import BaseService
from tenancy_kernel.services.ledger_store import LedgerStore
from tenancy_kernel.services.notifier import Notifier, StoreNotifier, notify_from_template
from tenancy_kernel.services.saga import Saga
from tenancy_kernel.store.base import RecordKind, RecordStore

logger = get_logger("services.bill_ledger")


class BillLedger(BaseService):
    """Bill issue, settlement and correction."""

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
        """
        Issue a PENDING bill against the tenant's ACTIVE stay.

        The stay must belong to ``tenant_id`` and be owned by the actor.
        """
        actor = require_actor(actor, "issue_bill", Role.LANDLORD)

        errors: list[dict[str, str]] = []
        amount = decimal_field(errors, "amount", amount, positive=True)
        bill_type = enum_field(errors, "bill_type", BillType, bill_type)
        due_date = date_field(errors, "due_date", due_date)
        month = text_field(errors, "month", month)
        units = decimal_field(errors, "units", units, required=False)
        if errors:
            raise ValidationError(errors)

        stay = self.store.get(RecordKind.STAY, stay_id)
        if stay is None:
            raise StayNotFoundError(stay_id)
        if stay.landlord_id != actor.actor_id:
            raise NotOwnerError("TenantStay", stay_id, actor.actor_id)
        if stay.tenant_id != tenant_id:
            raise NoActiveStayError(tenant_id)
        if not stay.is_active:
            raise StayNotActiveError(stay.id, stay.status.value)

        bill = Bill(
            id=uuid4(),
            stay_id=stay.id,
            tenant_id=stay.tenant_id,
            landlord_id=stay.landlord_id,
            amount=amount,
            bill_type=bill_type,
            month=month,
            due_date=due_date,
            created_at=self._clock.now(),
            units=units,
        )

        saga = Saga("issue_bill")
        issued = saga.step("create_bill", self.store.put, RecordKind.BILL, bill)
        saga.notify(
            "notify_tenant",
            notify_from_template,
            self._notifier,
            self._config.template("bill_issued"),
            issued.tenant_id,
            Role.TENANT,
            bill_type=issued.bill_type.value,
            amount=issued.amount,
            due_date=issued.due_date.isoformat(),
        )

        logger.info(
            "bill_issued",
            extra={
                "bill_id": str(issued.id),
                "stay_id": str(issued.stay_id),
                "tenant_id": str(issued.tenant_id),
                "amount": issued.amount,
                "bill_type": issued.bill_type.value,
            },
        )
        return issued

    def settle_bill(self, actor: Actor, bill_id: UUID) -> Bill:
        """
        Mark the acting tenant's bill PAID and record the payment.

        Raises:
            BillNotFoundError, NotOwnerError, BillAlreadyPaidError,
            PartialFailureError.
        """
        actor = require_actor(actor, "settle_bill")
        bill = self.store.get(RecordKind.BILL, bill_id)
        if bill is None:
            raise BillNotFoundError(bill_id)
        if bill.tenant_id != actor.actor_id:
            raise NotOwnerError("Bill", bill_id, actor.actor_id)
        if bill.is_paid:
            raise BillAlreadyPaidError(bill.id, bill.paid_at)

        now = self._clock.now()
        saga = Saga("settle_bill")
        paid = saga.step("mark_paid", self._mark_paid, bill, now)
        saga.step(
            "append_payment",
            self._ledger.record,
            bill.tenant_id,
            HistoryType.PAYMENT,
            f"Paid {bill.bill_type.value} bill of {bill.amount}",
            actor.actor_id,
            occurred_at=now,
            amount=bill.amount,
            month=bill.month,
            units=bill.units,
            status=HistoryStatus.PAID,
        )
        saga.notify(
            "notify_landlord",
            notify_from_template,
            self._notifier,
            self._config.template("bill_paid"),
            bill.landlord_id,
            Role.LANDLORD,
            bill_type=bill.bill_type.value,
            amount=bill.amount,
        )

        logger.info(
            "bill_settled",
            extra={"bill_id": str(bill.id), "tenant_id": str(bill.tenant_id), "amount": bill.amount},
        )
        return paid

    def delete_bill(self, actor: Actor, bill_id: UUID) -> None:
        """Remove a bill as a correction.  No ledger entry is appended."""
        actor = require_actor(actor, "delete_bill", Role.LANDLORD)
        bill = self.store.get(RecordKind.BILL, bill_id)
        if bill is None:
            raise BillNotFoundError(bill_id)
        if bill.landlord_id != actor.actor_id:
            raise NotOwnerError("Bill", bill_id, actor.actor_id)
        if not self.store.delete(RecordKind.BILL, bill_id):
            raise BillNotFoundError(bill_id)
        logger.info(
            "bill_deleted",
            extra={"bill_id": str(bill_id), "status": bill.status.value},
        )

    def _mark_paid(self, bill: Bill, now: datetime) -> Bill:
        current = bill
        while True:
            if BILL_WORKFLOW.find_transition(current.status.value, "settle") is None:
                raise BillAlreadyPaidError(current.id, current.paid_at)
            paid = self.store.compare_and_set(
                RecordKind.BILL,
                bill.id,
                {"status": current.status},
                {"status": BillStatus.PAID, "paid_at": now},
            )
            if paid is not None:
                return paid

            current = self.store.get(RecordKind.BILL, bill.id)
            if current is None:
                raise BillNotFoundError(bill.id)
            if current.is_paid:
                logger.warning(
                    "bill_settlement_race_lost",
                    extra={
                        "invariant": KernelInvariant.SINGLE_SETTLEMENT.value,
                        "bill_id": str(bill.id),
                    },
                )
                raise BillAlreadyPaidError(bill.id, current.paid_at)
            # stored status moved between PENDING and OVERDUE; retry from it
