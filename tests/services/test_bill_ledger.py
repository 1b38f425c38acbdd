"""
BillLedger through the orchestrator: issue against an ACTIVE stay,
settle exactly once, delete as a correction, OVERDUE derived at read time.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from tenancy_kernel.domain.records import (
    BillStatus,
    BillType,
    HistoryStatus,
    HistoryType,
    NotificationType,
    Role,
)
from tenancy_kernel.exceptions import (
    BillAlreadyPaidError,
    BillNotFoundError,
    NoActiveStayError,
    NotOwnerError,
    RoleNotPermittedError,
    StayNotActiveError,
    StayNotFoundError,
    ValidationError,
)
from tenancy_kernel.store.base import RecordKind


@pytest.fixture
def issue(orchestrator, household, active_stay):
    """Factory: issue a bill on the household's active stay."""

    def _issue(amount="1200.00", bill_type=BillType.RENT, due_date="2024-03-10", month="March", units=None):
        return orchestrator.issue_bill(
            household.landlord,
            household.tenant.actor_id,
            active_stay.id,
            amount,
            bill_type,
            due_date,
            month,
            units,
        )

    return _issue


class TestIssueBill:

    def test_issue_creates_pending_bill(self, issue, household, active_stay, deterministic_clock):
        bill = issue(units="142.5", bill_type="ELECTRICITY", amount="310.75")

        assert bill.status == BillStatus.PENDING
        assert bill.amount == Decimal("310.75")
        assert bill.bill_type == BillType.ELECTRICITY
        assert bill.units == Decimal("142.5")
        assert bill.due_date == date(2024, 3, 10)
        assert bill.stay_id == active_stay.id
        assert bill.tenant_id == household.tenant.actor_id
        assert bill.landlord_id == household.landlord.actor_id
        assert bill.created_at == deterministic_clock.now()
        assert bill.paid_at is None

    def test_issue_appends_no_ledger_entry(self, issue, orchestrator, household):
        issue()
        types = [e.entry_type for e in orchestrator.list_history(household.tenant.actor_id)]
        assert types == [HistoryType.JOINED]

    def test_issue_notifies_tenant(self, issue, orchestrator, household):
        issue()
        bill_notes = [
            n for n in orchestrator.list_notifications(household.tenant)
            if n.notification_type == NotificationType.NEW_BILL_CYCLE
        ]
        assert len(bill_notes) == 1
        assert bill_notes[0].title == "New Bill Received"
        assert bill_notes[0].message == "You have a new bill for RENT ($1200.00) due on 2024-03-10."

    @pytest.mark.parametrize("amount", ["0", "-5", "abc", None])
    def test_bad_amount_rejected(self, issue, orchestrator, household, amount):
        with pytest.raises(ValidationError) as exc_info:
            issue(amount=amount)
        assert exc_info.value.field_errors[0]["field"] == "amount"
        assert orchestrator.list_bills(tenant_id=household.tenant.actor_id) == []

    def test_all_bad_fields_reported_together(self, issue):
        with pytest.raises(ValidationError) as exc_info:
            issue(amount="0", bill_type="GAS", due_date="soon", month=" ")
        fields = {e["field"] for e in exc_info.value.field_errors}
        assert fields == {"amount", "bill_type", "due_date", "month"}

    def test_tenant_cannot_issue(self, orchestrator, household, active_stay):
        with pytest.raises(RoleNotPermittedError):
            orchestrator.issue_bill(
                household.tenant, household.tenant.actor_id, active_stay.id,
                "100", BillType.RENT, "2024-03-10", "March",
            )

    def test_other_landlord_cannot_issue(self, orchestrator, other_landlord, household, active_stay):
        with pytest.raises(NotOwnerError):
            orchestrator.issue_bill(
                other_landlord, household.tenant.actor_id, active_stay.id,
                "100", BillType.RENT, "2024-03-10", "March",
            )

    def test_unknown_stay(self, orchestrator, household, active_stay):
        with pytest.raises(StayNotFoundError):
            orchestrator.issue_bill(
                household.landlord, household.tenant.actor_id, uuid4(),
                "100", BillType.RENT, "2024-03-10", "March",
            )

    def test_tenant_mismatch(self, orchestrator, household, active_stay):
        with pytest.raises(NoActiveStayError):
            orchestrator.issue_bill(
                household.landlord, uuid4(), active_stay.id,
                "100", BillType.RENT, "2024-03-10", "March",
            )

    def test_ended_stay_cannot_be_billed(self, orchestrator, household, active_stay, store):
        orchestrator.end_stay(household.landlord, active_stay.id)
        with pytest.raises(StayNotActiveError):
            orchestrator.issue_bill(
                household.landlord, household.tenant.actor_id, active_stay.id,
                "100", BillType.RENT, "2024-03-10", "March",
            )
        assert store.query(RecordKind.BILL) == []


class TestSettleBill:

    def test_settle_marks_paid_and_records_payment(self, issue, orchestrator, household, deterministic_clock):
        bill = issue(units="20")
        deterministic_clock.advance(3600)

        paid = orchestrator.settle_bill(household.tenant, bill.id)

        assert paid.status == BillStatus.PAID
        assert paid.paid_at == deterministic_clock.now()
        payment = orchestrator.list_history(household.tenant.actor_id)[-1]
        assert payment.entry_type == HistoryType.PAYMENT
        assert payment.amount == Decimal("1200.00")
        assert payment.month == "March"
        assert payment.units == Decimal("20")
        assert payment.status == HistoryStatus.PAID
        assert payment.created_by == household.tenant.actor_id
        assert payment.occurred_at == paid.paid_at

    def test_settle_notifies_landlord(self, issue, orchestrator, household):
        bill = issue()
        orchestrator.settle_bill(household.tenant, bill.id)
        [note] = orchestrator.list_notifications(household.landlord)
        assert note.notification_type == NotificationType.PAYMENT_RECEIVED
        assert note.message == "Tenant has paid RENT bill of $1200.00."

    def test_second_settlement_rejected(self, issue, orchestrator, household, deterministic_clock):
        bill = issue()
        first = orchestrator.settle_bill(household.tenant, bill.id)
        deterministic_clock.advance(60)

        with pytest.raises(BillAlreadyPaidError) as exc_info:
            orchestrator.settle_bill(household.tenant, bill.id)

        assert exc_info.value.paid_at == first.paid_at
        [stored] = orchestrator.list_bills(tenant_id=household.tenant.actor_id)
        assert stored.paid_at == first.paid_at
        payments = [
            e for e in orchestrator.list_history(household.tenant.actor_id)
            if e.entry_type == HistoryType.PAYMENT
        ]
        assert len(payments) == 1

    def test_only_billed_tenant_can_settle(self, issue, orchestrator, household, make_user):
        bill = issue()
        stranger = make_user(Role.TENANT, "Stranger")
        with pytest.raises(NotOwnerError):
            orchestrator.settle_bill(stranger, bill.id)
        with pytest.raises(NotOwnerError):
            orchestrator.settle_bill(household.landlord, bill.id)

    def test_unknown_bill(self, orchestrator, household):
        with pytest.raises(BillNotFoundError):
            orchestrator.settle_bill(household.tenant, uuid4())

    def test_bill_settles_after_stay_ends(self, issue, orchestrator, household, active_stay):
        bill = issue()
        orchestrator.end_stay(household.landlord, active_stay.id)
        assert orchestrator.settle_bill(household.tenant, bill.id).status == BillStatus.PAID


class TestOverdue:

    def test_overdue_derived_not_stored(self, issue, orchestrator, household, deterministic_clock, store):
        bill = issue(due_date="2024-03-10")
        deterministic_clock.advance_days(10)  # 2024-03-11

        [listed] = orchestrator.list_bills(tenant_id=household.tenant.actor_id)
        assert listed.status == BillStatus.OVERDUE
        assert store.get(RecordKind.BILL, bill.id).status == BillStatus.PENDING

    def test_overdue_bill_still_settles(self, issue, orchestrator, household, deterministic_clock):
        bill = issue(due_date="2024-03-02")
        deterministic_clock.advance_days(5)
        assert orchestrator.settle_bill(household.tenant, bill.id).status == BillStatus.PAID
        [listed] = orchestrator.list_bills(tenant_id=household.tenant.actor_id)
        assert listed.status == BillStatus.PAID

    def test_stored_overdue_bill_settles(self, issue, orchestrator, household, store):
        bill = issue(due_date="2024-03-02")
        store.compare_and_set(RecordKind.BILL, bill.id, {}, {"status": BillStatus.OVERDUE})

        paid = orchestrator.settle_bill(household.tenant, bill.id)
        assert paid.status == BillStatus.PAID
        assert paid.paid_at is not None
        assert store.get(RecordKind.BILL, bill.id).status == BillStatus.PAID
        payments = [
            e for e in orchestrator.list_history(household.tenant.actor_id)
            if e.entry_type == HistoryType.PAYMENT
        ]
        assert len(payments) == 1

        with pytest.raises(BillAlreadyPaidError) as exc_info:
            orchestrator.settle_bill(household.tenant, bill.id)
        assert exc_info.value.paid_at == paid.paid_at


class TestDeleteBill:

    def test_delete_removes_without_ledger_entry(self, issue, orchestrator, household):
        bill = issue()
        orchestrator.delete_bill(household.landlord, bill.id)
        assert orchestrator.list_bills(landlord_id=household.landlord.actor_id) == []
        types = [e.entry_type for e in orchestrator.list_history(household.tenant.actor_id)]
        assert types == [HistoryType.JOINED]

    def test_delete_paid_bill_keeps_payment_entry(self, issue, orchestrator, household):
        bill = issue()
        orchestrator.settle_bill(household.tenant, bill.id)
        orchestrator.delete_bill(household.landlord, bill.id)
        types = [e.entry_type for e in orchestrator.list_history(household.tenant.actor_id)]
        assert types == [HistoryType.JOINED, HistoryType.PAYMENT]

    def test_other_landlord_cannot_delete(self, issue, orchestrator, other_landlord):
        bill = issue()
        with pytest.raises(NotOwnerError):
            orchestrator.delete_bill(other_landlord, bill.id)

    def test_tenant_cannot_delete(self, issue, orchestrator, household):
        bill = issue()
        with pytest.raises(RoleNotPermittedError):
            orchestrator.delete_bill(household.tenant, bill.id)

    def test_unknown_bill(self, orchestrator, household):
        with pytest.raises(BillNotFoundError):
            orchestrator.delete_bill(household.landlord, uuid4())
