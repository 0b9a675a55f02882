# app/core/security.py
from __future__ import annotations

"""
Yunoa — Security primitives
===========================

- Password hashing (passlib bcrypt)
- Token minting per family (access, password reset, video session, stream, HLS)
- `get_current_user` dependency
- `ensure_self_or_admin` ownership guard for user-scoped routes

Decoding and revocation live in `app.core.jwt`.
"""

import logging
from datetime import timedelta
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.jwt import decode_access_token, encode_token, get_bearer_token
from app.core.exceptions import InvalidTokenException
from app.db.models.user import User
from app.db.session import get_async_db

logger = logging.getLogger("auth")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)


# ─────────────────────────────────────────────────────────────
# 🔐 Passwords
# ─────────────────────────────────────────────────────────────
def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # malformed stored hash
        return False


# ─────────────────────────────────────────────────────────────
# 🎟️ Token minting
# ─────────────────────────────────────────────────────────────
def user_public_dict(user: User) -> Dict[str, Any]:
    return {"id": str(user.id), "username": user.username, "email": user.email, "role": user.role}


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """7-day access token carrying the public user claims."""
    token, _ = encode_token(
        {"sub": str(user.id), **user_public_dict(user)},
        token_type="access",
        expires_in=expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return token


def create_password_reset_token(user: User) -> tuple[str, Dict[str, Any]]:
    return encode_token(
        {"sub": str(user.id), "email": user.email, "purpose": "password_reset"},
        token_type="password_reset",
        expires_in=timedelta(minutes=settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES),
    )


def create_video_session_token(user: User, video_id: UUID) -> str:
    token, _ = encode_token(
        {"sub": str(user.id), "userId": str(user.id), "videoId": str(video_id)},
        token_type="video_session",
        expires_in=timedelta(seconds=settings.VIDEO_SESSION_EXPIRE_SECONDS),
    )
    return token


def create_stream_token(user_id: UUID, video_id: UUID) -> str:
    token, _ = encode_token(
        {"sub": str(user_id), "vid": str(video_id)},
        token_type="stream",
        expires_in=timedelta(seconds=settings.STREAM_URL_EXPIRE_SECONDS),
    )
    return token


def create_hls_token(user_id: UUID, video_id: UUID, session_id: str) -> str:
    token, _ = encode_token(
        {"sub": str(user_id), "vid": str(video_id), "sid": session_id},
        token_type="hls",
        expires_in=timedelta(seconds=settings.HLS_SESSION_EXPIRE_SECONDS),
    )
    return token


# ─────────────────────────────────────────────────────────────
# 👤 Current user dependencies
# ─────────────────────────────────────────────────────────────
async def _load_user(db: AsyncSession, payload: Dict[str, Any]) -> User:
    try:
        user_id = UUID(str(payload["sub"]))
    except (KeyError, ValueError):
        raise InvalidTokenException("Token invalide")
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if user is None:
        raise InvalidTokenException("Utilisateur introuvable")
    return user


async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
) -> User:
    """Authenticate a user from the presented **access** token.

    Steps:
    1) Extract the Bearer token (401 "Token d'accès requis" when absent).
    2) Decode & validate via `app.core.jwt` (expiry, type, revocation).
    3) Load the user; expose id + payload on `request.state` for the limiter.
    """
    token = get_bearer_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token d'accès requis",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = await decode_access_token(token)
    user = await _load_user(db, payload)

    request.state.user_id = str(user.id)
    request.state.token_payload = payload
    return user


def ensure_self_or_admin(user: User, user_id: UUID) -> None:
    """403 unless `user` is the owner of `user_id`'s data or an admin."""
    if user.is_admin or user.id == user_id:
        return
    logger.warning("User %s tried to access data of %s", user.id, user_id)
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Accès non autorisé")


__all__ = [
    "pwd_context",
    "get_password_hash",
    "verify_password",
    "user_public_dict",
    "create_access_token",
    "create_password_reset_token",
    "create_video_session_token",
    "create_stream_token",
    "create_hls_token",
    "get_current_user",
    "ensure_self_or_admin",
]
