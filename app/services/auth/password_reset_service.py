from __future__ import annotations

"""
Password reset — signed link flow
=================================

1) `request_password_reset(email)` mints a 15-minute JWT
   (`token_type=password_reset`, `purpose=password_reset`), keeps it as the
   user's only `password_resets` row and mails
   `FRONTEND_URL/reset-password?token=<jwt>`.
2) `reset_password(token, new_password)` accepts the token only if it decodes
   with the right purpose **and** still matches an unexpired row; the
   password is re-hashed and the row deleted (single use).
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlencode

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import email as email_service
from app.core.config import settings
from app.core.exceptions import BadRequestException, InvalidTokenException
from app.core.jwt import decode_token
from app.core.security import create_password_reset_token, get_password_hash
from app.db.models.auth_tokens import PasswordReset
from app.db.models.user import User
from app.schemas.base import SuccessResponse
from app.utils.dates import utcnow

logger = logging.getLogger("auth")

MIN_PASSWORD_LENGTH = 6


def build_reset_link(token: str) -> str:
    return f"{settings.frontend_url_str}/reset-password?{urlencode({'token': token})}"


async def request_password_reset(email: Optional[str], db: AsyncSession) -> SuccessResponse:
    email_norm = (email or "").strip().lower()
    if not email_norm:
        raise BadRequestException("Email requis")

    user = (await db.execute(select(User).where(User.email == email_norm))).scalar_one_or_none()
    if user is None:
        raise BadRequestException(
            "Cet email n'est associé à aucun compte. "
            "Veuillez vérifier si vous l'avez bien écrit ou si vous avez un compte."
        )

    token, payload = create_password_reset_token(user)

    # Only the newest link stays valid
    await db.execute(delete(PasswordReset).where(PasswordReset.user_id == user.id))
    db.add(
        PasswordReset(
            user_id=user.id,
            token=token,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
    )
    await db.commit()

    await email_service.send_password_reset_email(user.email, user.username, build_reset_link(token))
    logger.info("Password reset requested user_id=%s", user.id)
    return SuccessResponse(message="Email de réinitialisation envoyé")


async def reset_password(token: Optional[str], new_password: Optional[str], db: AsyncSession) -> SuccessResponse:
    if not token or not new_password:
        raise BadRequestException("Token et nouveau mot de passe requis")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise BadRequestException("Le mot de passe doit contenir au moins 6 caractères")

    # ── [Step 1] Signature, expiry and purpose ──────────────────────────────
    try:
        payload = await decode_token(token, expected_types=["password_reset"])
    except InvalidTokenException:
        raise BadRequestException("Token invalide ou expiré")
    if payload.get("purpose") != "password_reset":
        raise BadRequestException("Token invalide")

    # ── [Step 2] Must still be the stored, unexpired link ───────────────────
    row = (
        await db.execute(
            select(PasswordReset).where(
                PasswordReset.token == token,
                PasswordReset.expires_at > utcnow(),
            )
        )
    ).scalar_one_or_none()
    if row is None:
        raise BadRequestException("Token invalide ou expiré")

    user = (await db.execute(select(User).where(User.id == row.user_id))).scalar_one_or_none()
    if user is None:
        raise BadRequestException("Token invalide ou expiré")

    # ── [Step 3] Update + consume ───────────────────────────────────────────
    user.password_hash = get_password_hash(new_password)
    await db.delete(row)
    await db.commit()

    logger.info("Password reset completed user_id=%s", user.id)
    return SuccessResponse(message="Mot de passe réinitialisé avec succès")


__all__ = ["build_reset_link", "request_password_reset", "reset_password"]
