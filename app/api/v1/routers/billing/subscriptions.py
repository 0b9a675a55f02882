"""
💳 Yunoa • Subscriptions API
============================

GET  /subscriptions/plans           — active plans, cheapest first (public)
GET  /subscriptions/me              — caller's active subscription
POST /subscriptions/create          {planId, paymentMethod} → {paymentUrl, planName}
POST /subscriptions/verify-payment  {sessionId | paymentId} → {paymentVerified, subscriptionActive}

Security
--------
- Payment routes are rate-limited and marked no-store.
- Checkout redirects go back to the caller's `Origin` (or FRONTEND_URL).
"""

from typing import List

from fastapi import APIRouter, Body, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.limiter import rate_limit
from app.core.security import get_current_user
from app.db.models.user import User
from app.db.session import get_async_db
from app.schemas.billing import (
    CreateSubscriptionRequest,
    CreateSubscriptionResponse,
    MySubscriptionResponse,
    PlanOut,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from app.security_headers import set_sensitive_cache
from app.services.billing import subscription_service

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


@router.get("/plans", response_model=List[PlanOut], summary="Available plans")
async def list_plans(db: AsyncSession = Depends(get_async_db)) -> List[PlanOut]:
    return await subscription_service.list_plans(db)


@router.get("/me", response_model=MySubscriptionResponse, summary="My subscription")
async def my_subscription(
    response: Response,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> MySubscriptionResponse:
    set_sensitive_cache(response)
    return await subscription_service.my_subscription(db, current_user)


@router.post("/create", response_model=CreateSubscriptionResponse, summary="Start a checkout")
@rate_limit("5/minute")
async def create_subscription(
    request: Request,
    response: Response,
    payload: CreateSubscriptionRequest = Body(...),
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> CreateSubscriptionResponse:
    set_sensitive_cache(response)
    return await subscription_service.create_subscription(
        db, current_user, payload, origin=request.headers.get("origin")
    )


@router.post("/verify-payment", response_model=VerifyPaymentResponse, summary="Confirm a payment")
@rate_limit("10/minute")
async def verify_payment(
    request: Request,
    response: Response,
    payload: VerifyPaymentRequest = Body(...),
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> VerifyPaymentResponse:
    set_sensitive_cache(response)
    return await subscription_service.verify_payment(db, current_user, payload)


__all__ = ["router"]
