# app/core/jwt.py
from __future__ import annotations

"""
Yunoa — JWT helpers
===================
- `encode_token` / `decode_token` for every token family the app mints:

  | token_type       | lifetime            | used by                                 |
  |------------------|---------------------|-----------------------------------------|
  | `access`         | 7 days              | Bearer auth on the API                  |
  | `password_reset` | 15 minutes          | `/auth/reset-password`                  |
  | `video_session`  | 4 hours             | player session handshake                |
  | `stream`         | 5 minutes           | signed byte-range stream URL            |
  | `hls`            | 5 minutes           | HLS playlist + segment URLs             |

- Redis JTI revocation lane (`revoked:jti:{jti}`) for access tokens.
- Case-insensitive Bearer extraction.

Notes
-----
- Token *creation* for specific families lives in `app.core.security`.
- If Redis is unavailable during a revocation check, `AUTH_FAIL_OPEN`
  decides (default: fail-closed with HTTP 503).
"""

import logging
import uuid
from datetime import timedelta
from typing import Any, Dict, Optional, Sequence, Tuple

from fastapi import HTTPException, Request, status
from jose import ExpiredSignatureError, JWTError, jwt
from redis.exceptions import RedisError

from app.core.config import settings
from app.core.exceptions import InvalidTokenException
from app.core.redis_client import redis_wrapper
from app.utils.dates import utcnow

logger = logging.getLogger("auth")

REVOKED_PREFIX = "revoked:jti:"


# ─────────────────────────────────────────────────────────────
# 🔏 Encode
# ─────────────────────────────────────────────────────────────
def encode_token(
    claims: Dict[str, Any],
    *,
    token_type: str,
    expires_in: timedelta,
) -> Tuple[str, Dict[str, Any]]:
    """Sign `claims` with standard `iat/exp/jti/token_type`; returns (token, payload)."""
    now = utcnow()
    payload: Dict[str, Any] = {
        **claims,
        "token_type": token_type,
        "jti": uuid.uuid4().hex,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    token = jwt.encode(payload, settings.JWT_SECRET_KEY.get_secret_value(), algorithm=settings.JWT_ALGORITHM)
    return token, payload


# ─────────────────────────────────────────────────────────────
# 🚫 Revocation lane
# ─────────────────────────────────────────────────────────────
async def _is_revoked(jti: str) -> bool:
    try:
        return bool(await redis_wrapper.client.get(f"{REVOKED_PREFIX}{jti}"))
    except (RedisError, RuntimeError) as e:
        if settings.AUTH_FAIL_OPEN:
            logger.error("Redis unavailable during revocation check (fail-open): %s", e)
            return False
        logger.error("Redis unavailable during revocation check (fail-closed): %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service d'authentification temporairement indisponible",
        )


async def revoke_token(payload: Dict[str, Any]) -> None:
    """Revoke a decoded token until its natural expiry."""
    jti = payload.get("jti")
    exp = int(payload.get("exp") or 0)
    ttl = max(1, exp - int(utcnow().timestamp()))
    if jti:
        await redis_wrapper.client.setex(f"{REVOKED_PREFIX}{jti}", ttl, "1")


# ─────────────────────────────────────────────────────────────
# 🔓 Decode
# ─────────────────────────────────────────────────────────────
async def decode_token(
    token: str,
    *,
    expected_types: Optional[Sequence[str]] = None,
    verify_revocation: bool = False,
) -> Dict[str, Any]:
    """Decode and validate a JWT.

    Security checks
    ---------------
    1) Signature and `exp` (python-jose)
    2) `sub` and `jti` present
    3) `token_type` in `expected_types` when given
    4) Redis revocation lane when `verify_revocation`

    Raises
    ------
    InvalidTokenException (401) for expired/invalid/mistyped/revoked tokens;
    HTTPException 503 when Redis is down and fail-closed.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        logger.info("Token expired.")
        raise InvalidTokenException("Token expiré", code="TOKEN_EXPIRED")
    except JWTError as e:
        logger.warning("JWT decoding failed: %s", e)
        raise InvalidTokenException("Token invalide", code="TOKEN_INVALID")

    if not payload.get("sub") or not payload.get("jti"):
        logger.warning("Token missing sub/jti.")
        raise InvalidTokenException("Token invalide", code="TOKEN_INVALID")

    if expected_types is not None and payload.get("token_type") not in set(expected_types):
        logger.warning(
            "Token type mismatch: got %r, expected one of %s",
            payload.get("token_type"), list(expected_types),
        )
        raise InvalidTokenException("Type de token invalide", code="TOKEN_TYPE")

    if verify_revocation and await _is_revoked(payload["jti"]):
        logger.warning("Token with JTI %s has been revoked.", payload["jti"])
        raise InvalidTokenException("Token révoqué", code="TOKEN_REVOKED")

    return payload


async def decode_access_token(token: str) -> Dict[str, Any]:
    return await decode_token(token, expected_types=["access"], verify_revocation=True)


# ─────────────────────────────────────────────────────────────
# 📥 Bearer extraction
# ─────────────────────────────────────────────────────────────
def get_bearer_token(request: Request) -> Optional[str]:
    """Bearer token from `Authorization` (case-insensitive scheme), or None."""
    header = request.headers.get("Authorization") or ""
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


__all__ = [
    "encode_token",
    "decode_token",
    "decode_access_token",
    "revoke_token",
    "get_bearer_token",
]
