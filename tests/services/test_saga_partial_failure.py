"""
Saga step reporting and the partial-failure contract.

No multi-record transaction exists, so a failure after the first write is
reported as PartialFailureError naming the completed steps; a failure in the
first step propagates unchanged, and a notification failure never fails
the operation.
"""

from uuid import uuid4

import pytest

from tenancy_kernel.domain.records import (
    BillStatus,
    BillType,
    Decision,
    HistoryType,
    RequestStatus,
    StayStatus,
)
from tenancy_kernel.exceptions import (
    ActiveStayExistsError,
    PartialFailureError,
    StoreError,
)
from tenancy_kernel.selectors.consistency_selector import ConsistencySelector
from tenancy_kernel.services.notifier import Notifier
from tenancy_kernel.services.orchestrator import TenancyOrchestrator
from tenancy_kernel.services.saga import Saga
from tenancy_kernel.store.base import RecordKind
from tenancy_kernel.store.memory import MemoryRecordStore


class FlakyStore(MemoryRecordStore):
    """Memory store that fails selected operations on demand."""

    def __init__(self):
        super().__init__()
        self.fail_put: set[RecordKind] = set()
        self.fail_counter = False

    def put(self, kind, record):
        if kind in self.fail_put:
            raise StoreError(f"injected put failure for {kind.value}")
        return super().put(kind, record)

    def adjust_counter(self, property_id, delta):
        if self.fail_counter:
            raise StoreError("injected counter failure")
        return super().adjust_counter(property_id, delta)


class BrokenNotifier(Notifier):
    def deliver(self, user_id, role, notification_type, title, message):
        raise ConnectionError("push gateway unavailable")


@pytest.fixture
def store():
    """Overrides the parametrized store: failures are injected in memory."""
    return FlakyStore()


class TestSagaRunner:

    def test_steps_recorded_in_order(self):
        saga = Saga("demo")
        assert saga.step("one", lambda: 1) == 1
        assert saga.step("two", lambda x: x + 1, 1) == 2
        assert saga.completed_steps == ["one", "two"]

    def test_first_step_failure_propagates_unchanged(self):
        saga = Saga("demo")
        with pytest.raises(ActiveStayExistsError):
            saga.step("one", _raise, ActiveStayExistsError(uuid4()))
        assert saga.completed_steps == []

    def test_later_failure_is_partial(self, captured_logs):
        saga = Saga("demo")
        saga.step("one", lambda: None)
        cause = RuntimeError("disk full")
        with pytest.raises(PartialFailureError) as exc_info:
            saga.step("two", _raise, cause)

        err = exc_info.value
        assert err.operation == "demo"
        assert err.completed_steps == ["one"]
        assert err.failed_step == "two"
        assert err.cause is cause
        assert err.__cause__ is cause
        assert any(r["message"] == "saga_partial_failure" for r in captured_logs())

    def test_notify_swallows(self, captured_logs):
        saga = Saga("demo")
        saga.notify("notify", _raise, RuntimeError("smtp down"))
        assert any(r["message"] == "saga_notification_failed" for r in captured_logs())


def _raise(exc):
    raise exc


class TestApprovePartialFailure:

    def test_counter_failure_after_stay_created(self, orchestrator, store, household, pending_request):
        store.fail_counter = True

        with pytest.raises(PartialFailureError) as exc_info:
            orchestrator.decide_request(household.landlord, pending_request.id, Decision.APPROVE)

        err = exc_info.value
        assert err.completed_steps == ["create_stay"]
        assert err.failed_step == "increment_occupancy"
        # The stay exists but the request is still pending and occupancy drifted
        assert orchestrator.get_active_stay(household.tenant.actor_id) is not None
        assert store.get(RecordKind.REQUEST, pending_request.id).status == RequestStatus.PENDING
        violations = ConsistencySelector(store).find_violations()
        assert [v.subject_id for v in violations] == [household.property_id]

    def test_ledger_failure_is_last_write(self, orchestrator, store, household, pending_request):
        store.fail_put = {RecordKind.HISTORY}

        with pytest.raises(PartialFailureError) as exc_info:
            orchestrator.decide_request(household.landlord, pending_request.id, Decision.APPROVE)

        assert exc_info.value.completed_steps == [
            "create_stay",
            "increment_occupancy",
            "approve_request",
        ]
        assert exc_info.value.failed_step == "append_joined"
        assert store.get(RecordKind.REQUEST, pending_request.id).status == RequestStatus.APPROVED

    def test_first_step_failure_writes_nothing(self, orchestrator, store, household, pending_request):
        store.fail_put = {RecordKind.STAY}

        with pytest.raises(StoreError) as exc_info:
            orchestrator.decide_request(household.landlord, pending_request.id, Decision.APPROVE)

        assert not isinstance(exc_info.value, PartialFailureError)
        assert orchestrator.get_occupancy(household.property_id).occupied_units == 0
        assert store.get(RecordKind.REQUEST, pending_request.id).status == RequestStatus.PENDING


class TestEndStayPartialFailure:

    def test_counter_failure_after_stay_ended(self, orchestrator, store, household, active_stay):
        store.fail_counter = True

        with pytest.raises(PartialFailureError) as exc_info:
            orchestrator.end_stay(household.landlord, active_stay.id)

        assert exc_info.value.completed_steps == ["end_stay"]
        assert store.get(RecordKind.STAY, active_stay.id).status == StayStatus.MOVED_OUT
        assert orchestrator.get_occupancy(household.property_id).occupied_units == 1
        types = [e.entry_type for e in orchestrator.list_history(household.tenant.actor_id)]
        assert types == [HistoryType.JOINED]


class TestSettlePartialFailure:

    def test_ledger_failure_after_bill_paid(self, orchestrator, store, household, active_stay):
        bill = orchestrator.issue_bill(
            household.landlord, household.tenant.actor_id, active_stay.id,
            "1200", BillType.RENT, "2024-03-10", "March",
        )
        store.fail_put = {RecordKind.HISTORY}

        with pytest.raises(PartialFailureError) as exc_info:
            orchestrator.settle_bill(household.tenant, bill.id)

        assert exc_info.value.completed_steps == ["mark_paid"]
        assert exc_info.value.failed_step == "append_payment"
        assert store.get(RecordKind.BILL, bill.id).status == BillStatus.PAID


class TestNotificationFailureIsolated:

    def test_transition_completes_when_notifier_raises(
        self, store, household, pending_request, deterministic_clock, engine_config, captured_logs
    ):
        orchestrator = TenancyOrchestrator(
            store, clock=deterministic_clock, notifier=BrokenNotifier(), config=engine_config
        )

        approved = orchestrator.decide_request(
            household.landlord, pending_request.id, Decision.APPROVE
        )

        assert approved.status == RequestStatus.APPROVED
        assert orchestrator.get_occupancy(household.property_id).occupied_units == 1
        assert any(r["message"] == "notification_delivery_failed" for r in captured_logs())

    def test_notification_store_failure_is_swallowed(self, orchestrator, store, household, pending_request):
        store.fail_put = {RecordKind.NOTIFICATION}
        approved = orchestrator.decide_request(
            household.landlord, pending_request.id, Decision.APPROVE
        )
        assert approved.status == RequestStatus.APPROVED
        assert orchestrator.list_notifications(household.tenant) == []
