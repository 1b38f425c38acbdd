"""
Module: tenancy_kernel.models.history
Responsibility: ORM persistence for the append-only tenant ledger.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Rows are never updated or deleted (db/immutability.py listeners).
    - ``sequence`` is unique and strictly increasing in insertion order; it
      is allocated from the history sequence counter in the same
      transaction as the INSERT.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, Index
from sqlalchemy.orm import Mapped, mapped_column

from tenancy_kernel.db.base import Base
from tenancy_kernel.db.types import LongText, Money, ShortText, Units, enum_type
from tenancy_kernel.domain.records import HistoryStatus, HistoryType


class HistoryEntryModel(Base):
    """Ledger row."""

    __tablename__ = "history_entries"

    __table_args__ = (
        Index("idx_history_tenant_sequence", "tenant_id", "sequence"),
    )

    sequence: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    tenant_id: Mapped[UUID] = mapped_column(nullable=False)

    entry_type: Mapped[HistoryType] = mapped_column(enum_type(HistoryType), nullable=False)

    description: Mapped[LongText] = mapped_column(nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    created_by: Mapped[UUID] = mapped_column(nullable=False)

    amount: Mapped[Money | None] = mapped_column(nullable=True)
    month: Mapped[ShortText | None] = mapped_column(nullable=True)
    year: Mapped[ShortText | None] = mapped_column(nullable=True)
    units: Mapped[Units | None] = mapped_column(nullable=True)
    status: Mapped[HistoryStatus | None] = mapped_column(
        enum_type(HistoryStatus, length=10),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<HistoryEntry #{self.sequence} {self.entry_type.value} tenant={self.tenant_id}>"
