"""
Module: tenancy_kernel.models.notification
Responsibility: ORM persistence for in-app notifications.  Not a source of
    truth for any business state.
Architecture position: Kernel > Models.  May import from db/ only.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, Index
from sqlalchemy.orm import Mapped, mapped_column

from tenancy_kernel.db.base import Base
from tenancy_kernel.db.types import LongText, NameText, enum_type
from tenancy_kernel.domain.records import NotificationType, Role


class NotificationModel(Base):
    """Notification row."""

    __tablename__ = "notifications"

    __table_args__ = (
        Index("idx_notifications_user_read", "user_id", "is_read"),
    )

    user_id: Mapped[UUID] = mapped_column(nullable=False)
    role: Mapped[Role] = mapped_column(enum_type(Role), nullable=False)
    notification_type: Mapped[NotificationType] = mapped_column(
        enum_type(NotificationType, length=30),
        nullable=False,
    )
    title: Mapped[NameText] = mapped_column(nullable=False)
    message: Mapped[LongText] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
