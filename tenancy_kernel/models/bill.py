"""
Module: tenancy_kernel.models.bill
Responsibility: ORM persistence for bills issued against a stay.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - amount > 0 (CHECK constraint).
    - Only PENDING and PAID are ever stored; OVERDUE is derived on read.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from tenancy_kernel.db.base import Base, UUIDString
from tenancy_kernel.db.types import Money, ShortText, Units, enum_type
from tenancy_kernel.domain.records import BillStatus, BillType


class BillModel(Base):
    """Bill row."""

    __tablename__ = "bills"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_bills_amount_positive"),
        Index("idx_bills_tenant", "tenant_id"),
        Index("idx_bills_landlord", "landlord_id"),
    )

    stay_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("tenant_stays.id"),
        nullable=False,
    )
    tenant_id: Mapped[UUID] = mapped_column(nullable=False)
    landlord_id: Mapped[UUID] = mapped_column(nullable=False)

    amount: Mapped[Money] = mapped_column(nullable=False)

    bill_type: Mapped[BillType] = mapped_column(enum_type(BillType), nullable=False)

    # Period label, e.g. "2024-03" or "March 2024"
    month: Mapped[ShortText] = mapped_column(nullable=False)

    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    status: Mapped[BillStatus] = mapped_column(
        enum_type(BillStatus),
        nullable=False,
        default=BillStatus.PENDING,
    )
    paid_at: Mapped[datetime | None] = mapped_column(nullable=True)

    units: Mapped[Units | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Bill {self.id}: {self.bill_type.value} {self.amount} {self.status.value}>"
