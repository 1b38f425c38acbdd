"""
Module: tenancy_kernel.models.tenant_stay
Responsibility: ORM persistence for tenant stays.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    A tenant has at most one ACTIVE stay: partial unique index
    uq_tenant_stays_one_active.  This is the point-of-creation re-check that
    turns the loser of two concurrent approvals into a Conflict.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from tenancy_kernel.db.base import Base, UUIDString
from tenancy_kernel.db.types import enum_type
from tenancy_kernel.domain.records import StayStatus

_ACTIVE = text("status = 'ACTIVE'")


class TenantStayModel(Base):
    """Tenant stay row."""

    __tablename__ = "tenant_stays"

    __table_args__ = (
        Index(
            "uq_tenant_stays_one_active",
            "tenant_id",
            unique=True,
            postgresql_where=_ACTIVE,
            sqlite_where=_ACTIVE,
        ),
        Index("idx_tenant_stays_landlord_status", "landlord_id", "status"),
        Index("idx_tenant_stays_property_status", "property_id", "status"),
    )

    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    landlord_id: Mapped[UUID] = mapped_column(nullable=False)
    property_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("properties.id"),
        nullable=False,
    )

    join_date: Mapped[datetime] = mapped_column(nullable=False)
    move_out_date: Mapped[datetime | None] = mapped_column(nullable=True)

    status: Mapped[StayStatus] = mapped_column(
        enum_type(StayStatus),
        nullable=False,
        default=StayStatus.ACTIVE,
    )

    request_id: Mapped[UUID | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<TenantStay {self.id}: tenant={self.tenant_id} {self.status.value}>"
