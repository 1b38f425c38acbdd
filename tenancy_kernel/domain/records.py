"""
Tenancy Domain Records (``tenancy_kernel.domain.records``).

Responsibility
--------------
Frozen dataclass value objects for the nouns of the tenancy engine:
users, properties, verification requests, tenant stays, bills, history
(ledger) entries and notifications.  Every store implementation reads and
writes exactly these types.

Architecture position
---------------------
**Kernel domain layer** -- pure data definitions with ZERO I/O.  No
dependency on db/, store/, services/ or selectors/.

Invariants enforced
-------------------
* All records are ``frozen=True``; a mutation is a ``dataclasses.replace``
  followed by ``RecordStore.put``.
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* All timestamps are timezone-aware UTC ``datetime`` values.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class Role(str, Enum):
    """Platform role carried by an authenticated actor."""

    LANDLORD = "landlord"
    TENANT = "tenant"
    ADMIN = "admin"


class UserStatus(str, Enum):
    """Platform access status.  REMOVED users have had access revoked."""

    ACTIVE = "active"
    PENDING = "pending"
    REMOVED = "removed"


class RequestStatus(str, Enum):
    """Verification request states (see VERIFICATION_REQUEST_WORKFLOW)."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    MOVED_OUT = "moved_out"


class Decision(str, Enum):
    """Landlord decision applied to a verification request."""

    APPROVE = "approve"
    REJECT = "reject"
    MOVE_OUT = "move_out"


class StayStatus(str, Enum):
    ACTIVE = "ACTIVE"
    MOVED_OUT = "MOVED_OUT"


class BillType(str, Enum):
    RENT = "RENT"
    ELECTRICITY = "ELECTRICITY"
    WATER = "WATER"
    MAINTENANCE = "MAINTENANCE"
    UTILITY = "UTILITY"
    OTHER = "OTHER"


class BillStatus(str, Enum):
    """Bill status.  The engine derives OVERDUE at read time; callers may store it."""

    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"


class HistoryType(str, Enum):
    """Ledger entry types."""

    JOINED = "JOINED"
    MOVE_OUT = "MOVE_OUT"
    PAYMENT = "PAYMENT"
    RENT_PAYMENT = "RENT_PAYMENT"
    LIGHT_BILL = "LIGHT_BILL"
    REMARK = "REMARK"


# Entry types only the engine itself may append.
LIFECYCLE_HISTORY_TYPES: frozenset[HistoryType] = frozenset(
    {HistoryType.JOINED, HistoryType.MOVE_OUT, HistoryType.PAYMENT}
)


class HistoryStatus(str, Enum):
    PAID = "paid"
    PENDING = "pending"


class NotificationType(str, Enum):
    MONTH_COMPLETED = "MONTH_COMPLETED"
    NEW_BILL_CYCLE = "NEW_BILL_CYCLE"
    PAYMENT_PENDING = "PAYMENT_PENDING"
    PAYMENT_RECEIVED = "PAYMENT_RECEIVED"
    REMARK_ADDED = "REMARK_ADDED"


@dataclass(frozen=True)
class User:
    """A platform account (landlord, tenant or admin)."""
    id: UUID
    name: str
    role: Role
    status: UserStatus = UserStatus.ACTIVE
    email: str | None = None

    @property
    def is_removed(self) -> bool:
        return self.status == UserStatus.REMOVED


@dataclass(frozen=True)
class Property:
    """A rentable property and its occupancy counters."""
    id: UUID
    landlord_id: UUID
    name: str
    total_units: int
    occupied_units: int = 0
    address: str = ""
    monthly_rent: Decimal = Decimal("0")

    @property
    def vacant_units(self) -> int:
        return self.total_units - self.occupied_units


@dataclass(frozen=True)
class PropertyOccupancy:
    """Read-side view of a property's counters."""
    property_id: UUID
    total_units: int
    occupied_units: int

    @property
    def vacant_units(self) -> int:
        return self.total_units - self.occupied_units


@dataclass(frozen=True)
class TenantIdentity:
    """Identity fields submitted with a verification request."""
    full_name: str
    mobile: str
    id_proof_type: str
    id_proof_number: str
    city: str

    def field_errors(self) -> list[dict[str, str]]:
        """Return one error per missing or blank field."""
        errors = []
        for name in ("full_name", "mobile", "id_proof_type", "id_proof_number", "city"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                errors.append({"field": name, "message": "is required"})
        return errors


@dataclass(frozen=True)
class PaymentDetails:
    """Application fee details captured at submission.  Recorded, never processed."""
    payment_status: str = "pending"
    payment_amount: Decimal | None = None
    transaction_id: str | None = None


@dataclass(frozen=True)
class VerificationRequest:
    """A tenant's application to join a property."""
    id: UUID
    tenant_id: UUID
    landlord_id: UUID
    property_id: UUID
    full_name: str
    mobile: str
    id_proof_type: str
    id_proof_number: str
    city: str
    status: RequestStatus
    submitted_at: datetime
    remarks: str | None = None
    joining_date: datetime | None = None
    payment_status: str = "pending"
    payment_amount: Decimal | None = None
    transaction_id: str | None = None
    updated_at: datetime | None = None
    verified_at: datetime | None = None
    rent_notes: str | None = None
    utility_details: str | None = None

    @property
    def identity(self) -> TenantIdentity:
        return TenantIdentity(
            full_name=self.full_name,
            mobile=self.mobile,
            id_proof_type=self.id_proof_type,
            id_proof_number=self.id_proof_number,
            city=self.city,
        )


@dataclass(frozen=True)
class TenantStay:
    """The authoritative record of an active or past tenancy."""
    id: UUID
    tenant_id: UUID
    landlord_id: UUID
    property_id: UUID
    join_date: datetime
    status: StayStatus = StayStatus.ACTIVE
    move_out_date: datetime | None = None
    request_id: UUID | None = None

    @property
    def is_active(self) -> bool:
        return self.status == StayStatus.ACTIVE


@dataclass(frozen=True)
class Bill:
    """An amount owed by a tenant under a stay."""
    id: UUID
    stay_id: UUID
    tenant_id: UUID
    landlord_id: UUID
    amount: Decimal
    bill_type: BillType
    month: str
    due_date: date
    created_at: datetime
    status: BillStatus = BillStatus.PENDING
    paid_at: datetime | None = None
    units: Decimal | None = None

    @property
    def is_paid(self) -> bool:
        return self.status == BillStatus.PAID

    def is_overdue(self, today: date) -> bool:
        return self.status == BillStatus.PENDING and self.due_date < today

    def as_of(self, today: date) -> Bill:
        """Return this bill with OVERDUE derived for ``today`` (never stored)."""
        if self.is_overdue(today):
            return replace(self, status=BillStatus.OVERDUE)
        return self


@dataclass(frozen=True)
class HistoryEntry:
    """An immutable fact in a tenant's ledger."""
    id: UUID
    tenant_id: UUID
    entry_type: HistoryType
    description: str
    occurred_at: datetime
    created_by: UUID
    amount: Decimal | None = None
    month: str | None = None
    year: str | None = None
    units: Decimal | None = None
    status: HistoryStatus | None = None
    sequence: int | None = None


@dataclass(frozen=True)
class Notification:
    """A fire-and-forget informational message for one user."""
    id: UUID
    user_id: UUID
    role: Role
    notification_type: NotificationType
    title: str
    message: str
    created_at: datetime
    is_read: bool = False


@dataclass(frozen=True)
class LandlordTenantView:
    """An ACTIVE stay hydrated with tenant and property display fields."""
    stay: TenantStay
    tenant_name: str
    property_name: str
    property_address: str | None = None
