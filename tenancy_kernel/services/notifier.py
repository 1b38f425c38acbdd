"""
Notifier -- fire-and-forget notification delivery and the user inbox.

Responsibility:
    Delivers informational notifications to users and exposes the inbox
    operations (list, mark read).  Notifications are never a source of
    truth for business state.

Architecture position:
    Kernel > Services.  The orchestrator calls ``notify`` as the final step
    of every saga.

Invariants enforced:
    - ``Notifier.notify`` never raises.  Delivery failures are logged at
      WARNING and dropped; a business transition is never rolled back or
      reported as partial because a notification failed.
    - ``BackgroundNotifier`` never blocks the calling transition on
      delivery; it hands the work to a thread pool.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any
from uuid import UUID, uuid4

from tenancy_kernel.config import NotificationTemplate
from tenancy_kernel.domain.clock import Clock, SystemClock
from tenancy_kernel.domain.identity import Actor, require_actor
from tenancy_kernel.domain.records import Notification, NotificationType, Role
from tenancy_kernel.exceptions import NotificationNotFoundError, NotOwnerError
from tenancy_kernel.logging_config import get_logger
from tenancy_kernel.services.base import BaseService
from tenancy_kernel.store.base import RecordKind, RecordStore

logger = get_logger("services.notifier")


class Notifier(ABC):
    """
    Notification sink.

    Subclasses implement ``deliver``; callers only ever use ``notify``.
    """

    def notify(
        self,
        user_id: UUID,
        role: Role,
        notification_type: NotificationType,
        title: str,
        message: str,
    ) -> None:
        """Deliver a notification.  Never raises."""
        try:
            self.deliver(user_id, role, notification_type, title, message)
        except Exception:
            logger.warning(
                "notification_delivery_failed",
                extra={
                    "user_id": str(user_id),
                    "notification_type": notification_type.value,
                    "title": title,
                },
                exc_info=True,
            )

    @abstractmethod
    def deliver(
        self,
        user_id: UUID,
        role: Role,
        notification_type: NotificationType,
        title: str,
        message: str,
    ) -> None:
        """Perform the delivery.  May raise; ``notify`` contains it."""


class StoreNotifier(Notifier):
    """Writes each notification as a record in the store (the in-app inbox)."""

    def __init__(self, store: RecordStore, clock: Clock | None = None):
        self._store = store
        self._clock = clock or SystemClock()

    def deliver(self, user_id, role, notification_type, title, message) -> None:
        notification = self._store.put(
            RecordKind.NOTIFICATION,
            Notification(
                id=uuid4(),
                user_id=user_id,
                role=role,
                notification_type=notification_type,
                title=title,
                message=message,
                created_at=self._clock.now(),
            ),
        )
        logger.info(
            "notification_delivered",
            extra={
                "notification_id": str(notification.id),
                "user_id": str(user_id),
                "notification_type": notification_type.value,
            },
        )


class BackgroundNotifier(Notifier):
    """
    Hands delivery to a thread pool so the caller never waits on it.

    ``drain()`` blocks until every submitted delivery has finished; tests
    and orderly shutdown use it.
    """

    def __init__(self, inner: Notifier, max_workers: int = 2):
        self._inner = inner
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="tenancy-notify",
        )
        self._pending: set[Future] = set()
        self._lock = threading.Lock()

    def notify(self, user_id, role, notification_type, title, message) -> None:
        try:
            future = self._executor.submit(
                self._inner.notify, user_id, role, notification_type, title, message
            )
        except RuntimeError:
            # Executor already shut down
            logger.warning(
                "notification_dropped",
                extra={"user_id": str(user_id), "notification_type": notification_type.value},
            )
            return
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._discard)

    def deliver(self, user_id, role, notification_type, title, message) -> None:
        self._inner.deliver(user_id, role, notification_type, title, message)

    def _discard(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def drain(self, timeout: float | None = None) -> None:
        with self._lock:
            pending = list(self._pending)
        wait(pending, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


class NotificationInbox(BaseService):
    """Read and acknowledge notifications addressed to an actor."""

    def list_for(self, actor: Actor) -> list[Notification]:
        """Newest first."""
        actor = require_actor(actor, "list_notifications")
        return self.store.query(
            RecordKind.NOTIFICATION,
            order_by="created_at",
            descending=True,
            user_id=actor.actor_id,
        )

    def mark_read(self, actor: Actor, notification_id: UUID) -> Notification:
        actor = require_actor(actor, "mark_notification_read")
        notification = self.store.get(RecordKind.NOTIFICATION, notification_id)
        if notification is None:
            raise NotificationNotFoundError(notification_id)
        if notification.user_id != actor.actor_id:
            raise NotOwnerError("Notification", notification_id, actor.actor_id)
        if notification.is_read:
            return notification
        updated = self.store.compare_and_set(
            RecordKind.NOTIFICATION, notification_id, {}, {"is_read": True}
        )
        if updated is None:
            raise NotificationNotFoundError(notification_id)
        return updated

    def mark_all_read(self, actor: Actor) -> int:
        """Mark every unread notification of the actor read; returns how many changed."""
        actor = require_actor(actor, "mark_all_notifications_read")
        changed = 0
        for notification in self.store.query(
            RecordKind.NOTIFICATION, user_id=actor.actor_id, is_read=False
        ):
            if self.store.compare_and_set(
                RecordKind.NOTIFICATION, notification.id, {"is_read": False}, {"is_read": True}
            ) is not None:
                changed += 1
        logger.info(
            "notifications_marked_read",
            extra={"user_id": str(actor.actor_id), "count": changed},
        )
        return changed


def notify_from_template(
    notifier: Notifier,
    template: NotificationTemplate,
    user_id: UUID,
    role: Role,
    *,
    type_status: str | None = None,
    **values: Any,
) -> None:
    """
    Render ``template`` with ``values`` and hand it to ``notifier``.

    ``type_status`` selects the template's pending type when it is "pending".
    """
    title, message = template.render(**values)
    notifier.notify(user_id, role, template.type_for(type_status), title, message)
