from __future__ import annotations

"""🔔 Yunoa — In-app notification (admin messages, billing events, renewal reminders)."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text, Uuid, false
from sqlalchemy.orm import relationship

from app.db.base_class import Base, CreatedAtMixin, UUIDPKMixin


class Notification(UUIDPKMixin, CreatedAtMixin, Base):
    __tablename__ = "notifications"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False, server_default=false())
    read_at = Column(DateTime(timezone=True), nullable=True)

    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        Index("ix_notifications_user_unread", "user_id", "is_read"),
        Index("ix_notifications_user_title_created", "user_id", "title", "created_at"),
    )

    user = relationship("User", back_populates="notifications", lazy="noload")
