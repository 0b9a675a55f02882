"""
Email verification codes — Yunoa
=================================

POST /auth/send-code    {email}        → emails a 6-digit code (10 min)
POST /auth/verify-code  {email, code}  → marks the code used

Codes are for addresses that are *not* yet registered; the signup screen
calls these before `/auth/register`.
"""

from fastapi import APIRouter, Body, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.limiter import rate_limit
from app.db.session import get_async_db
from app.schemas.auth import SendCodeRequest, VerifyCodeRequest
from app.schemas.base import SuccessResponse
from app.security_headers import set_sensitive_cache
from app.services.auth.email_verification_service import send_code, verify_code

router = APIRouter(prefix="/auth", tags=["Email Verification"])


@router.post("/send-code", response_model=SuccessResponse, summary="Email a verification code")
@rate_limit("3/minute", "20/hour")
async def send_verification_code(
    request: Request,
    response: Response,
    payload: SendCodeRequest = Body(...),
    db: AsyncSession = Depends(get_async_db),
) -> SuccessResponse:
    set_sensitive_cache(response)
    return await send_code(payload.email, db)


@router.post("/verify-code", response_model=SuccessResponse, summary="Check a verification code")
@rate_limit("10/minute")
async def verify_verification_code(
    request: Request,
    response: Response,
    payload: VerifyCodeRequest = Body(...),
    db: AsyncSession = Depends(get_async_db),
) -> SuccessResponse:
    set_sensitive_cache(response)
    return await verify_code(payload.email, payload.code, db)


__all__ = ["router", "send_verification_code", "verify_verification_code"]
