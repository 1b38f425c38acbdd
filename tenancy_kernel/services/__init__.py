"""Write-side services: registry, occupancy, bills, ledger, notifications and the orchestrator."""

from tenancy_kernel.services.base import BaseService
from tenancy_kernel.services.bill_ledger import BillLedger
from tenancy_kernel.services.ledger_store import LedgerStore
from tenancy_kernel.services.manual_records import ManualRecordService
from tenancy_kernel.services.notifier import (
    BackgroundNotifier,
    NotificationInbox,
    Notifier,
    StoreNotifier,
    notify_from_template,
)
from tenancy_kernel.services.occupancy_counter import OccupancyCounter
from tenancy_kernel.services.orchestrator import TenancyOrchestrator
from tenancy_kernel.services.saga import Saga
from tenancy_kernel.services.tenancy_registry import TenancyRegistry

__all__ = [
    "BackgroundNotifier",
    "BaseService",
    "BillLedger",
    "LedgerStore",
    "ManualRecordService",
    "NotificationInbox",
    "Notifier",
    "OccupancyCounter",
    "Saga",
    "StoreNotifier",
    "TenancyOrchestrator",
    "TenancyRegistry",
    "notify_from_template",
]
