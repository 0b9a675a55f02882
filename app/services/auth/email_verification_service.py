from __future__ import annotations

"""
Email verification codes (pre-registration)
===========================================

- `send_code(email)` — refuse emails already tied to an account, reuse the
  latest unexpired unused code or mint a fresh 6-digit one, then mail it.
  Mail failures are logged by the sender and never fail the request.
- `verify_code(email, code)` — the code must match, be unused and unexpired;
  it is then marked used.

Expiry is compared in SQL so naive/aware datetime handling stays in the
database layer.
"""

import logging
import secrets
from datetime import timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import email as email_service
from app.core.config import settings
from app.core.exceptions import BadRequestException
from app.db.models.auth_tokens import EmailVerificationCode
from app.db.models.user import User
from app.schemas.base import SuccessResponse
from app.utils.dates import utcnow

logger = logging.getLogger("auth")


def _norm_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def generate_code() -> str:
    """Random 6-digit numeric code (100000–999999)."""
    return str(100000 + secrets.randbelow(900000))


async def send_code(email: Optional[str], db: AsyncSession) -> SuccessResponse:
    email_norm = _norm_email(email)
    if not email_norm:
        raise BadRequestException("Email requis")

    # ── [Step 1] Email must not belong to an account ────────────────────────
    taken = (await db.execute(select(User.id).where(User.email == email_norm))).first()
    if taken:
        raise BadRequestException("Cet email est déjà associé à un compte existant")

    # ── [Step 2] Reuse a live code, else mint one ───────────────────────────
    now = utcnow()
    existing = (
        await db.execute(
            select(EmailVerificationCode)
            .where(
                EmailVerificationCode.email == email_norm,
                EmailVerificationCode.used.is_(False),
                EmailVerificationCode.expires_at > now,
            )
            .order_by(EmailVerificationCode.created_at.desc())
            .limit(1)
        )
    ).scalar_one_or_none()

    if existing is not None:
        code = existing.code
        logger.info("Reusing verification code for %s", email_norm)
    else:
        code = generate_code()
        db.add(
            EmailVerificationCode(
                email=email_norm,
                code=code,
                expires_at=now + timedelta(minutes=settings.EMAIL_CODE_TTL_MINUTES),
                used=False,
            )
        )
        await db.commit()
        logger.info("Generated verification code for %s", email_norm)

    # ── [Step 3] Deliver (non-fatal) ────────────────────────────────────────
    await email_service.send_verification_code_email(email_norm, code)
    return SuccessResponse(message="Code de vérification envoyé par email")


async def verify_code(email: Optional[str], code: Optional[str], db: AsyncSession) -> SuccessResponse:
    email_norm = _norm_email(email)
    code = (code or "").strip()
    if not email_norm or not code:
        raise BadRequestException("Email et code requis")

    row = (
        await db.execute(
            select(EmailVerificationCode)
            .where(
                EmailVerificationCode.email == email_norm,
                EmailVerificationCode.code == code,
                EmailVerificationCode.used.is_(False),
                EmailVerificationCode.expires_at > utcnow(),
            )
            .limit(1)
        )
    ).scalar_one_or_none()
    if row is None:
        raise BadRequestException("Code invalide ou expiré")

    row.used = True
    await db.commit()
    logger.info("Verification code accepted for %s", email_norm)
    return SuccessResponse(message="Code vérifié avec succès")


__all__ = ["generate_code", "send_code", "verify_code"]
