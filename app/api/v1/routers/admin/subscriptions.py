"""
🎁 Yunoa • Admin subscription tools
===================================

POST /admin/subscriptions/give
    {userId, planCode, durationMonths=1} — grant a plan (aliases
    `essentiel` / `premium`; `lifetime` = 100 years), no auto-renew.

POST /admin/subscriptions/renewal-reminders
    Run the renewal reminder pass now (the scheduler runs it periodically).
"""

from fastapi import APIRouter, Body, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.limiter import rate_limit
from app.db.models.user import User
from app.db.session import get_async_db
from app.dependencies.admin import admin_user
from app.schemas.billing import GiveSubscriptionRequest, GiveSubscriptionResponse, RenewalRemindersResponse
from app.security_headers import set_sensitive_cache
from app.services.billing.reminder_service import run_renewal_reminders
from app.services.billing.subscription_service import give_subscription

router = APIRouter(prefix="/subscriptions", tags=["Admin Subscriptions"])


@router.post("/give", response_model=GiveSubscriptionResponse, summary="Gift a subscription")
@rate_limit("30/minute")
async def give(
    request: Request,
    response: Response,
    payload: GiveSubscriptionRequest = Body(...),
    db: AsyncSession = Depends(get_async_db),
    admin: User = Depends(admin_user),
) -> GiveSubscriptionResponse:
    set_sensitive_cache(response)
    return await give_subscription(db, payload, admin=admin)


@router.post("/renewal-reminders", response_model=RenewalRemindersResponse, summary="Send renewal reminders now")
async def renewal_reminders(
    db: AsyncSession = Depends(get_async_db),
    _admin: User = Depends(admin_user),
) -> RenewalRemindersResponse:
    return await run_renewal_reminders(db)


__all__ = ["router"]
