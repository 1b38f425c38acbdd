"""
Module: tenancy_kernel.models.user
Responsibility: ORM persistence for platform accounts.  The kernel reads a
    user's role and status and writes the status only when a stay
    termination revokes a tenant's access.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from tenancy_kernel.db.base import Base
from tenancy_kernel.db.types import NameText, enum_type
from tenancy_kernel.domain.records import Role, UserStatus


class UserModel(Base):
    """Platform account row."""

    __tablename__ = "users"

    __table_args__ = (
        Index("idx_users_role", "role"),
    )

    name: Mapped[NameText] = mapped_column(nullable=False)

    role: Mapped[Role] = mapped_column(enum_type(Role), nullable=False)

    status: Mapped[UserStatus] = mapped_column(
        enum_type(UserStatus),
        nullable=False,
        default=UserStatus.ACTIVE,
    )

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.name} ({self.role.value}, {self.status.value})>"
