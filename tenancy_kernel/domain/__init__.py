"""
Tenancy kernel domain layer: pure records, workflows, identity and clock.

Nothing in this package performs I/O.
"""

from tenancy_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from tenancy_kernel.domain.identity import Actor, require_actor
from tenancy_kernel.domain.records import (
    Bill,
    BillStatus,
    BillType,
    Decision,
    HistoryEntry,
    HistoryStatus,
    HistoryType,
    LandlordTenantView,
    Notification,
    NotificationType,
    PaymentDetails,
    Property,
    PropertyOccupancy,
    RequestStatus,
    Role,
    StayStatus,
    TenantIdentity,
    TenantStay,
    User,
    UserStatus,
    VerificationRequest,
)

__all__ = [
    "Actor",
    "Bill",
    "BillStatus",
    "BillType",
    "Clock",
    "Decision",
    "DeterministicClock",
    "HistoryEntry",
    "HistoryStatus",
    "HistoryType",
    "LandlordTenantView",
    "Notification",
    "NotificationType",
    "PaymentDetails",
    "Property",
    "PropertyOccupancy",
    "RequestStatus",
    "Role",
    "StayStatus",
    "SystemClock",
    "TenantIdentity",
    "TenantStay",
    "User",
    "UserStatus",
    "VerificationRequest",
    "require_actor",
]
