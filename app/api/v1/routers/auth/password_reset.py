"""
Password reset — Yunoa
======================

POST /auth/forgot-password {email}
    Mint a 15-minute reset token and email `FRONTEND_URL/reset-password?token=...`.

POST /auth/reset-password {token, newPassword}
    Check the token (purpose + stored row), set the new password and burn the token.
"""

from fastapi import APIRouter, Body, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.limiter import rate_limit
from app.db.session import get_async_db
from app.schemas.auth import ForgotPasswordRequest, ResetPasswordRequest
from app.schemas.base import SuccessResponse
from app.security_headers import set_sensitive_cache
from app.services.auth.password_reset_service import request_password_reset, reset_password

router = APIRouter(prefix="/auth", tags=["Password Reset"])


@router.post("/forgot-password", response_model=SuccessResponse, summary="Request a password reset link")
@rate_limit("3/minute", "10/hour")
async def forgot_password(
    request: Request,
    response: Response,
    payload: ForgotPasswordRequest = Body(...),
    db: AsyncSession = Depends(get_async_db),
) -> SuccessResponse:
    set_sensitive_cache(response)
    return await request_password_reset(payload.email, db)


@router.post("/reset-password", response_model=SuccessResponse, summary="Set a new password")
@rate_limit("5/minute")
async def reset_password_route(
    request: Request,
    response: Response,
    payload: ResetPasswordRequest = Body(...),
    db: AsyncSession = Depends(get_async_db),
) -> SuccessResponse:
    set_sensitive_cache(response)
    return await reset_password(payload.token, payload.new_password, db)


__all__ = ["router", "forgot_password", "reset_password_route"]
