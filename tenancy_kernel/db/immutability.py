"""
ORM-level immutability enforcement for the tenant ledger.

The store contract already refuses history mutations before any SQL is
built.  These listeners are the second line: they catch code that loads a
``HistoryEntryModel`` through a raw session and tries to change or delete
it.

    session.flush()
         |
         v
    [before_update] --> _check_history_entry_immutability() --> ImmutabilityViolationError
    [before_delete] --> _check_history_entry_delete() ---------^
         |
         v
    SQL sent to database (only if checks pass)

Entity          | When Immutable
----------------|-----------------------
HistoryEntry    | ALWAYS (from creation)

Usage:

    from tenancy_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

To temporarily disable (tests only):

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from tenancy_kernel.exceptions import ImmutabilityViolationError
from tenancy_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_history_entry_immutability(mapper, connection, target):
    """Prevent any UPDATE of a ledger row."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "HistoryEntry",
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="HistoryEntry",
        entity_id=str(target.id),
        reason="History entries are immutable and cannot be modified",
    )


def _check_history_entry_delete(mapper, connection, target):
    """Prevent any DELETE of a ledger row."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "HistoryEntry",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="HistoryEntry",
        entity_id=str(target.id),
        reason="History entries cannot be deleted",
    )


def register_immutability_listeners():
    """
    Register the ledger immutability listeners.

    Idempotent: listeners already present are not added twice.
    """
    from tenancy_kernel.models.history import HistoryEntryModel

    if not event.contains(HistoryEntryModel, "before_update", _check_history_entry_immutability):
        event.listen(HistoryEntryModel, "before_update", _check_history_entry_immutability)
    if not event.contains(HistoryEntryModel, "before_delete", _check_history_entry_delete):
        event.listen(HistoryEntryModel, "before_delete", _check_history_entry_delete)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove the ledger immutability listeners.

    WARNING: Only use this in tests that need to bypass the ORM layer to
    verify the store-level rules.
    """
    from tenancy_kernel.models.history import HistoryEntryModel

    _safe_remove_listener(HistoryEntryModel, "before_update", _check_history_entry_immutability)
    _safe_remove_listener(HistoryEntryModel, "before_delete", _check_history_entry_delete)
