from __future__ import annotations

"""
👤 Yunoa — User (accounts & auth)
=================================

Login credentials, role and the engagement rows hanging off an account.

Design highlights
-----------------
• **Unique username and email**; both are looked up on every login/register.
• **Role as a guarded string** (`user` | `admin`), not a DB enum, so the
  schema stays portable between Postgres and SQLite.
• **Relationship hygiene**: child rows cascade at the DB level
  (`ondelete="CASCADE"`) and the ORM side uses `passive_deletes=True`.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, String, true
from sqlalchemy.orm import relationship

from app.db.base_class import Base, CreatedAtMixin, UUIDPKMixin
from app.schemas.enums import UserRole


class User(UUIDPKMixin, CreatedAtMixin, Base):
    __tablename__ = "users"

    username = Column(String(50), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False, default=UserRole.USER.value, server_default=UserRole.USER.value)
    is_first_login = Column(Boolean, nullable=False, default=True, server_default=true())

    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        CheckConstraint("role IN ('user', 'admin')", name="role_valid"),
        CheckConstraint("length(username) > 0", name="username_not_blank"),
        CheckConstraint("length(email) > 0", name="email_not_blank"),
    )

    favorites = relationship("Favorite", back_populates="user", passive_deletes=True, lazy="noload")
    ratings = relationship("Rating", back_populates="user", passive_deletes=True, lazy="noload")
    watch_history = relationship("WatchHistory", back_populates="user", passive_deletes=True, lazy="noload")
    notifications = relationship("Notification", back_populates="user", passive_deletes=True, lazy="noload")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
