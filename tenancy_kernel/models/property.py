"""
Module: tenancy_kernel.models.property
Responsibility: ORM persistence for properties and their occupancy counters.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    0 <= occupied_units <= total_units, declared as a CHECK constraint.  The
    store's atomic conditional UPDATE keeps writes inside the bounds so the
    constraint only fires on corrupt direct writes.
"""

from uuid import UUID

from sqlalchemy import CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from tenancy_kernel.db.base import Base
from tenancy_kernel.db.types import Money, NameText


class PropertyModel(Base):
    """Property row with total and occupied unit counters."""

    __tablename__ = "properties"

    __table_args__ = (
        CheckConstraint("total_units >= 0", name="ck_properties_total_units"),
        CheckConstraint(
            "occupied_units >= 0 AND occupied_units <= total_units",
            name="ck_properties_occupancy_bounds",
        ),
        Index("idx_properties_landlord", "landlord_id"),
    )

    landlord_id: Mapped[UUID] = mapped_column(nullable=False)

    name: Mapped[NameText] = mapped_column(nullable=False)

    # Fixed capacity
    total_units: Mapped[int] = mapped_column(Integer, nullable=False)

    # Live count, moved only through RecordStore.adjust_counter
    occupied_units: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    address: Mapped[str] = mapped_column(String(500), nullable=False, default="")

    monthly_rent: Mapped[Money] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Property {self.name}: {self.occupied_units}/{self.total_units}>"
