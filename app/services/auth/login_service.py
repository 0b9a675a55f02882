# app/services/auth/login_service.py
from __future__ import annotations

"""
Login, registration and logout
==============================

- **Login** by username + password, guarded by the Redis brute-force counters
  in `app.services.auth.brute_force` (per account and per IP).
- **Register** a `user`-role account and sign it in immediately.
- **Logout** revokes the presented access token's JTI until it expires.

Both login and register answer with `{token, user}`; the token is a 7-day
access JWT minted by `app.core.security.create_access_token`.
"""

import logging
from typing import Any, Dict

from fastapi import HTTPException, Request, status
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.jwt import revoke_token
from app.core.limiter import client_ip
from app.core.security import create_access_token, get_password_hash, verify_password
from app.db.models.user import User
from app.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserPublic
from app.schemas.enums import UserRole
from app.services.auth import brute_force

logger = logging.getLogger("auth")


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(token=create_access_token(user), user=UserPublic.model_validate(user))


# ─────────────────────────────────────────────────────────────
# 🔐 Login
# ─────────────────────────────────────────────────────────────
async def login_user(payload: LoginRequest, db: AsyncSession, request: Request) -> AuthResponse:
    """
    Authenticate by username + password.

    Steps
    -----
    1) Refuse while the account or the IP is blocked (429 + Retry-After).
    2) Look the user up (401 "Utilisateur non trouvé").
    3) Verify the bcrypt hash (401 "Mot de passe incorrect").
    4) On success reset counters and mint the access token.
    """
    ip = client_ip(request)
    username = payload.username.strip()

    # ── [Step 1] Brute-force gate ────────────────────────────────────────────
    await brute_force.ensure_not_blocked(username, ip)

    # ── [Step 2] Lookup ─────────────────────────────────────────────────────
    user = (await db.execute(select(User).where(User.username == username))).scalar_one_or_none()
    if user is None:
        await brute_force.record_failure(username, ip)
        logger.info("Login failed (unknown user) username=%s ip=%s", username, ip)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Utilisateur non trouvé")

    # ── [Step 3] Password ───────────────────────────────────────────────────
    if not verify_password(payload.password, user.password_hash):
        await brute_force.record_failure(username, ip)
        logger.info("Login failed (bad password) user_id=%s ip=%s", user.id, ip)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Mot de passe incorrect")

    # ── [Step 4] Success ────────────────────────────────────────────────────
    await brute_force.record_success(username, ip)
    logger.info("Login success user_id=%s", user.id)
    return _auth_response(user)


# ─────────────────────────────────────────────────────────────
# 🆕 Register
# ─────────────────────────────────────────────────────────────
async def register_user(payload: RegisterRequest, db: AsyncSession) -> AuthResponse:
    username = payload.username.strip()
    email = payload.email.strip().lower()

    existing = (
        await db.execute(select(User.id).where(or_(User.username == username, User.email == email)))
    ).first()
    if existing:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Utilisateur ou email déjà existant")

    user = User(
        username=username,
        email=email,
        password_hash=get_password_hash(payload.password),
        role=UserRole.USER.value,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # concurrent registration with the same username/email
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Utilisateur ou email déjà existant")
    await db.refresh(user)

    logger.info("User registered user_id=%s", user.id)
    return _auth_response(user)


# ─────────────────────────────────────────────────────────────
# 🚪 Logout
# ─────────────────────────────────────────────────────────────
async def logout_user(token_payload: Dict[str, Any]) -> None:
    """Revoke the current access token (idempotent)."""
    await revoke_token(token_payload)
    logger.info("Access token revoked user_id=%s jti=%s", token_payload.get("sub"), token_payload.get("jti"))


__all__ = ["login_user", "register_user", "logout_user"]
