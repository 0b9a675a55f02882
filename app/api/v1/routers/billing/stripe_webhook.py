"""
🪝 Yunoa • Stripe webhook
=========================

POST /payments/stripe/webhook
    Raw body + `Stripe-Signature` header, verified by the Stripe SDK
    (400 on failure). Acknowledges with `{received: true}`.

Exempt from rate limiting: Stripe retries on its own schedule.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.limiter import rate_limit_exempt
from app.db.session import get_async_db
from app.schemas.billing import WebhookAck
from app.services.billing.webhook_service import process_webhook

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/stripe/webhook", response_model=WebhookAck, summary="Stripe events")
@rate_limit_exempt()
async def stripe_webhook(request: Request, db: AsyncSession = Depends(get_async_db)) -> WebhookAck:
    payload = await request.body()
    await process_webhook(db, payload, request.headers.get("stripe-signature"))
    return WebhookAck()


__all__ = ["router"]
