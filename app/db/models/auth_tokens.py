from __future__ import annotations

"""
🔑 Yunoa — One-time auth artifacts
==================================

• `EmailVerificationCode` — 6-digit code mailed before registration. Keyed by
  email (no user exists yet); reused while unexpired and unused.
• `PasswordReset` — the signed reset JWT currently valid for a user. Only the
  latest one is kept; it is deleted once used.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text, Uuid, false

from app.db.base_class import Base, CreatedAtMixin, UUIDPKMixin


class EmailVerificationCode(UUIDPKMixin, CreatedAtMixin, Base):
    __tablename__ = "email_verification_codes"

    email = Column(String(255), nullable=False, index=True)
    code = Column(String(6), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used = Column(Boolean, nullable=False, default=False, server_default=false())

    __table_args__ = (Index("ix_email_codes_lookup", "email", "code", "used"),)


class PasswordReset(UUIDPKMixin, CreatedAtMixin, Base):
    __tablename__ = "password_resets"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(Text, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
