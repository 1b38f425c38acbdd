"""
Notifier delivery, the background dispatcher and the notification inbox.
"""

import threading
from dataclasses import replace
from uuid import uuid4

import pytest

from tenancy_kernel.config import NotificationTemplate
from tenancy_kernel.domain.identity import Actor
from tenancy_kernel.domain.records import Decision, NotificationType, Property, Role
from tenancy_kernel.exceptions import NotificationNotFoundError, NotOwnerError
from tenancy_kernel.services.notifier import (
    BackgroundNotifier,
    Notifier,
    StoreNotifier,
    notify_from_template,
)
from tenancy_kernel.services.orchestrator import TenancyOrchestrator
from tenancy_kernel.store.base import RecordKind


class RecordingNotifier(Notifier):
    """Collects deliveries; optionally waits on an event first."""

    def __init__(self, gate: threading.Event | None = None):
        self.delivered: list[tuple] = []
        self.gate = gate

    def deliver(self, user_id, role, notification_type, title, message):
        if self.gate is not None:
            self.gate.wait(timeout=5)
        self.delivered.append((user_id, role, notification_type, title, message))


class TestTemplates:

    def test_render_and_type(self):
        template = NotificationTemplate(
            notification_type=NotificationType.PAYMENT_RECEIVED,
            title="New Utility Bill",
            message="Bill for {month} {year}: {status}.",
            pending_type=NotificationType.PAYMENT_PENDING,
        )
        assert template.render(month="March", year="2024", status="paid") == (
            "New Utility Bill",
            "Bill for March 2024: paid.",
        )
        assert template.type_for("pending") == NotificationType.PAYMENT_PENDING
        assert template.type_for("paid") == NotificationType.PAYMENT_RECEIVED
        assert template.type_for(None) == NotificationType.PAYMENT_RECEIVED

    def test_notify_from_template(self, engine_config):
        notifier = RecordingNotifier()
        user_id = uuid4()
        notify_from_template(
            notifier,
            engine_config.template("record_light_bill"),
            user_id,
            Role.TENANT,
            type_status="pending",
            month="March",
            year="2024",
            status="pending",
        )
        [(uid, role, ntype, title, message)] = notifier.delivered
        assert uid == user_id
        assert role == Role.TENANT
        assert ntype == NotificationType.PAYMENT_PENDING
        assert title == "New Utility Bill"
        assert "March 2024" in message


class TestStoreNotifier:

    def test_delivery_creates_unread_record(self, store, deterministic_clock, tenant, orchestrator):
        StoreNotifier(store, deterministic_clock).notify(
            tenant.actor_id, Role.TENANT, NotificationType.REMARK_ADDED, "Hello", "World"
        )
        [note] = orchestrator.list_notifications(tenant)
        assert note.is_read is False
        assert note.created_at == deterministic_clock.now()
        assert note.role == Role.TENANT


class TestBackgroundNotifier:

    def test_caller_does_not_wait_for_delivery(self):
        gate = threading.Event()
        inner = RecordingNotifier(gate)
        notifier = BackgroundNotifier(inner, max_workers=1)
        try:
            notifier.notify(uuid4(), Role.TENANT, NotificationType.REMARK_ADDED, "t", "m")
            assert inner.delivered == []
            gate.set()
            notifier.drain(timeout=5)
            assert len(inner.delivered) == 1
        finally:
            gate.set()
            notifier.shutdown()

    def test_notify_after_shutdown_is_dropped(self, captured_logs):
        notifier = BackgroundNotifier(RecordingNotifier(), max_workers=1)
        notifier.shutdown()
        notifier.notify(uuid4(), Role.TENANT, NotificationType.REMARK_ADDED, "t", "m")
        assert any(r["message"] == "notification_dropped" for r in captured_logs())

    def test_orchestrator_dispatches_in_background(
        self, memory_store, deterministic_clock, engine_config, make_identity
    ):
        config = replace(engine_config, async_notifications=True)
        orchestrator = TenancyOrchestrator(memory_store, clock=deterministic_clock, config=config)
        assert isinstance(orchestrator.notifier, BackgroundNotifier)

        landlord = Actor(uuid4(), Role.LANDLORD)
        tenant = Actor(uuid4(), Role.TENANT)
        prop = memory_store.put(
            RecordKind.PROPERTY,
            Property(id=uuid4(), landlord_id=landlord.actor_id, name="Loft", total_units=1),
        )
        request = orchestrator.submit_request(tenant, prop.id, make_identity())
        orchestrator.decide_request(landlord, request.id, Decision.APPROVE)
        orchestrator.close()

        assert [n.title for n in orchestrator.list_notifications(tenant)] == ["Application Approved!"]


class TestInbox:

    @pytest.fixture
    def delivered(self, store, deterministic_clock, tenant):
        notifier = StoreNotifier(store, deterministic_clock)
        for title in ("one", "two", "three"):
            notifier.notify(tenant.actor_id, Role.TENANT, NotificationType.REMARK_ADDED, title, "m")
            deterministic_clock.tick()

    def test_newest_first(self, orchestrator, tenant, delivered):
        assert [n.title for n in orchestrator.list_notifications(tenant)] == ["three", "two", "one"]

    def test_mark_read(self, orchestrator, tenant, delivered):
        note = orchestrator.list_notifications(tenant)[0]
        assert orchestrator.mark_notification_read(tenant, note.id).is_read is True
        # already read: returned unchanged
        assert orchestrator.mark_notification_read(tenant, note.id).is_read is True

    def test_mark_all_read(self, orchestrator, tenant, delivered):
        note = orchestrator.list_notifications(tenant)[0]
        orchestrator.mark_notification_read(tenant, note.id)

        assert orchestrator.mark_all_notifications_read(tenant) == 2
        assert all(n.is_read for n in orchestrator.list_notifications(tenant))
        assert orchestrator.mark_all_notifications_read(tenant) == 0

    def test_cannot_read_someone_elses(self, orchestrator, landlord, tenant, delivered):
        note = orchestrator.list_notifications(tenant)[0]
        with pytest.raises(NotOwnerError):
            orchestrator.mark_notification_read(landlord, note.id)
        assert orchestrator.list_notifications(landlord) == []

    def test_unknown_notification(self, orchestrator, tenant):
        with pytest.raises(NotificationNotFoundError):
            orchestrator.mark_notification_read(tenant, uuid4())
