"""
Module: estate_kernel.models.notification
Responsibility: ORM persistence for in-app notifications.
Architecture position: Kernel > Models.  May import from db/base.py only.

Rows are written by the NotificationDispatcher in their own transaction,
after the transition that caused them has committed.  A failed write never
affects the transition.
"""

from uuid import UUID

from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from estate_kernel.db.base import TrackedBase, UUIDString


class Notification(TrackedBase):
    __tablename__ = "notifications"

    __table_args__ = (
        Index("idx_notification_user_read", "user_id", "is_read"),
    )

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # info | warning | success | error
    type: Mapped[str] = mapped_column(String(20), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    action_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    related_entity_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    related_entity_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Notification {self.type} to {self.user_id}: {self.title}>"
