"""
Authentication API — Yunoa
==========================

Endpoints
---------
POST /auth/login
    Username + password sign-in → `{token, user}`.

POST /auth/register
    Create a `user` account and sign it in → `{token, user}`.

GET /auth/verify
    Validate the Bearer token → `{user}`.

POST /auth/logout
    Revoke the presented access token (its JTI) until it expires.

Security & DX
-------------
- **Route rate limits** complement the Redis brute-force counters inside
  `app.services.auth.login_service`.
- **Sensitive cache headers** on every token-issuing route (no-store).
- We return Pydantic models directly so headers set on `response` are kept.
"""

from fastapi import APIRouter, Body, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.limiter import rate_limit
from app.core.security import get_current_user
from app.db.models.user import User
from app.db.session import get_async_db
from app.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserPublic, VerifyResponse
from app.schemas.base import SuccessResponse
from app.security_headers import set_sensitive_cache
from app.services.auth.login_service import login_user, logout_user, register_user

router = APIRouter(prefix="/auth", tags=["Authentication"])


# ──────────────────────────────────────────────────────────────
# 🔐 POST /auth/login: Username + Password
# ──────────────────────────────────────────────────────────────
@router.post("/login", response_model=AuthResponse, summary="Username + password login")
@rate_limit("10/minute")
async def login(
    request: Request,
    response: Response,
    payload: LoginRequest = Body(...),
    db: AsyncSession = Depends(get_async_db),
) -> AuthResponse:
    """Authenticate with username/password.

    Security
    --------
    - Marks the response **no-store** (so tokens are not cached).
    - Per-account and per-IP throttles executed inside `login_user` (429 while blocked).
    """
    # [Step 0] Cache hardening
    set_sensitive_cache(response)

    # [Step 1] Delegate to login service (throttles, password check, token)
    return await login_user(payload=payload, db=db, request=request)


# ──────────────────────────────────────────────────────────────
# 🆕 POST /auth/register: Create account + sign in
# ──────────────────────────────────────────────────────────────
@router.post("/register", response_model=AuthResponse, summary="Create an account")
@rate_limit("5/minute")
async def register(
    request: Request,
    response: Response,
    payload: RegisterRequest = Body(...),
    db: AsyncSession = Depends(get_async_db),
) -> AuthResponse:
    set_sensitive_cache(response)
    return await register_user(payload, db)


# ──────────────────────────────────────────────────────────────
# ✅ GET /auth/verify: Who am I
# ──────────────────────────────────────────────────────────────
@router.get("/verify", response_model=VerifyResponse, summary="Validate the current token")
async def verify(
    response: Response,
    current_user: User = Depends(get_current_user),
) -> VerifyResponse:
    set_sensitive_cache(response)
    return VerifyResponse(user=UserPublic.model_validate(current_user))


# ──────────────────────────────────────────────────────────────
# 🚪 POST /auth/logout: Revoke current access token
# ──────────────────────────────────────────────────────────────
@router.post("/logout", response_model=SuccessResponse, summary="Revoke the current token")
async def logout(
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    set_sensitive_cache(response)
    await logout_user(request.state.token_payload)
    return SuccessResponse(message="Déconnexion réussie")


__all__ = ["router", "login", "register", "verify", "logout"]
