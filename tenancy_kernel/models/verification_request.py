"""
Module: tenancy_kernel.models.verification_request
Responsibility: ORM persistence for tenant verification requests.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    At most one pending request per tenant: partial unique index
    uq_verification_requests_one_pending (PostgreSQL and SQLite both
    support WHERE clauses on indexes).
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from tenancy_kernel.db.base import Base
from tenancy_kernel.db.types import LongText, Money, NameText, ShortText, enum_type
from tenancy_kernel.domain.records import RequestStatus

_PENDING = text("status = 'pending'")


class VerificationRequestModel(Base):
    """Verification request row."""

    __tablename__ = "verification_requests"

    __table_args__ = (
        Index(
            "uq_verification_requests_one_pending",
            "tenant_id",
            unique=True,
            postgresql_where=_PENDING,
            sqlite_where=_PENDING,
        ),
        Index("idx_verification_requests_landlord", "landlord_id"),
        Index("idx_verification_requests_tenant", "tenant_id"),
    )

    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    landlord_id: Mapped[UUID] = mapped_column(nullable=False)
    property_id: Mapped[UUID] = mapped_column(nullable=False)

    # Submitted identity
    full_name: Mapped[NameText] = mapped_column(nullable=False)
    mobile: Mapped[str] = mapped_column(String(30), nullable=False)
    id_proof_type: Mapped[ShortText] = mapped_column(nullable=False)
    id_proof_number: Mapped[ShortText] = mapped_column(nullable=False)
    city: Mapped[ShortText] = mapped_column(nullable=False)

    status: Mapped[RequestStatus] = mapped_column(
        enum_type(RequestStatus),
        nullable=False,
        default=RequestStatus.PENDING,
    )

    submitted_at: Mapped[datetime] = mapped_column(nullable=False)
    remarks: Mapped[LongText | None] = mapped_column(nullable=True)
    joining_date: Mapped[datetime | None] = mapped_column(nullable=True)

    # Application fee, recorded only
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    payment_amount: Mapped[Money | None] = mapped_column(nullable=True)
    transaction_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    updated_at: Mapped[datetime | None] = mapped_column(nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rent_notes: Mapped[LongText | None] = mapped_column(nullable=True)
    utility_details: Mapped[LongText | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<VerificationRequest {self.id}: tenant={self.tenant_id} {self.status.value}>"
