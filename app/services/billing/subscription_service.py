from __future__ import annotations

"""
Subscriptions & payments
========================

Checkout
--------
`create_subscription` opens a Stripe Checkout Session (card / paypal) or a
paysafecard payment page, records a *pending* `payments` row and remembers
the user's billing preferences.

Activation
----------
`verify_payment` (after the redirect) and the `checkout.session.completed`
webhook both end in `activate_subscription`: payment → paid, the user's
active subscription is updated (or created) for one billing period and the
`subscribers` mirror is refreshed.

Admin gifts
-----------
`give_subscription` grants a plan by code for N months (or "lifetime" =
100 years) with `payment_method=admin_gift` and no auto-renew.
"""

import json
import logging
from datetime import datetime
from typing import Any, List, Optional
from urllib.parse import urlencode
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import BadRequestException, NotFoundException
from app.db.models.billing import BillingSettings, Payment, Subscriber, Subscription, SubscriptionPlan
from app.db.models.user import User
from app.schemas.billing import (
    CreateSubscriptionRequest,
    CreateSubscriptionResponse,
    GiveSubscriptionRequest,
    GiveSubscriptionResponse,
    MySubscriptionResponse,
    PlanOut,
    SubscriptionOut,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from app.schemas.enums import PaymentMethod, PaymentProvider, PaymentStatus, PlanInterval, SubscriptionStatus
from app.services.billing import stripe_gateway
from app.services.billing.stripe_gateway import field
from app.services.notification_service import add_notification
from app.utils.dates import add_months, add_years, utcnow

logger = logging.getLogger(__name__)

PLAN_CODE_ALIASES = {
    "essentiel": "basic_monthly",
    "premium": "premium_monthly",
}
LIFETIME_CODE = "lifetime"
LIFETIME_GIFT_YEARS = 100

ACTIVATED_TITLE = "✅ Abonnement activé"


def _log_step(scope: str, step: str, details: Optional[dict] = None) -> None:
    suffix = f" - {json.dumps(details, default=str)}" if details else ""
    logger.info("[%s] %s%s", scope, step, suffix)


def period_end(plan: SubscriptionPlan, start: datetime) -> Optional[datetime]:
    """End of the first billing period (None for lifetime plans)."""
    if plan.interval == PlanInterval.MONTH.value:
        return add_months(start, 1)
    if plan.interval == PlanInterval.YEAR.value:
        return add_years(start, 1)
    return None


# ─────────────────────────────────────────────────────────────
# 🔎 Lookups
# ─────────────────────────────────────────────────────────────
async def list_plans(db: AsyncSession) -> List[PlanOut]:
    rows = (
        await db.execute(
            select(SubscriptionPlan)
            .where(SubscriptionPlan.is_active.is_(True))
            .order_by(SubscriptionPlan.price_cents.asc())
        )
    ).scalars().all()
    return [PlanOut.model_validate(p) for p in rows]


async def get_active_subscription(db: AsyncSession, user_id: UUID) -> Optional[Subscription]:
    stmt = (
        select(Subscription)
        .where(Subscription.user_id == user_id, Subscription.status == SubscriptionStatus.ACTIVE.value)
        .order_by(Subscription.created_at.desc())
        .limit(1)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def my_subscription(db: AsyncSession, user: User) -> MySubscriptionResponse:
    sub = await get_active_subscription(db, user.id)
    if sub is None:
        return MySubscriptionResponse(subscribed=False)
    await db.refresh(sub, ["plan"])
    return MySubscriptionResponse(subscribed=True, subscription=SubscriptionOut.model_validate(sub))


# ─────────────────────────────────────────────────────────────
# 🧾 Writers shared by checkout, webhooks and gifts
# ─────────────────────────────────────────────────────────────
async def upsert_subscriber(
    db: AsyncSession,
    *,
    user_id: UUID,
    subscribed: bool,
    tier: Optional[str],
    subscription_end: Optional[datetime],
    email: Optional[str] = None,
    stripe_customer_id: Optional[str] = None,
) -> Subscriber:
    subscriber = (
        await db.execute(select(Subscriber).where(Subscriber.user_id == user_id))
    ).scalar_one_or_none()
    if subscriber is None:
        subscriber = Subscriber(user_id=user_id, email=email or "")
        db.add(subscriber)
    if email:
        subscriber.email = email
    if stripe_customer_id:
        subscriber.stripe_customer_id = stripe_customer_id
    subscriber.subscribed = subscribed
    subscriber.subscription_tier = tier
    subscriber.subscription_end = subscription_end
    subscriber.updated_at = utcnow()
    return subscriber


async def upsert_billing_settings(db: AsyncSession, user_id: UUID, method: PaymentMethod) -> BillingSettings:
    prefs = await db.get(BillingSettings, user_id)
    if prefs is None:
        prefs = BillingSettings(user_id=user_id)
        db.add(prefs)
    prefs.preferred_method = method.value
    setattr(prefs, f"{method.value}_auto_renew", method != PaymentMethod.PAYSAFECARD)
    prefs.notify_before_days = settings.RENEWAL_NOTIFY_BEFORE_DAYS
    return prefs


async def activate_subscription(
    db: AsyncSession,
    *,
    user_id: UUID,
    plan: SubscriptionPlan,
    payment_method: str,
    email: Optional[str] = None,
    stripe_customer_id: Optional[str] = None,
    notify: bool = True,
) -> Subscription:
    """Start a billing period for `plan`; the caller commits."""
    now = utcnow()
    end = period_end(plan, now)

    sub = await get_active_subscription(db, user_id)
    if sub is None:
        sub = Subscription(user_id=user_id)
        db.add(sub)
    sub.plan_id = plan.id
    sub.status = SubscriptionStatus.ACTIVE.value
    sub.payment_method = payment_method
    sub.auto_renew = payment_method != PaymentMethod.PAYSAFECARD.value
    sub.current_period_start = now
    sub.current_period_end = end

    await upsert_subscriber(
        db,
        user_id=user_id,
        subscribed=True,
        tier=plan.name,
        subscription_end=end,
        email=email,
        stripe_customer_id=stripe_customer_id,
    )
    if notify:
        add_notification(
            db,
            user_id,
            ACTIVATED_TITLE,
            f"Votre abonnement {plan.name} a été activé avec succès. Profitez de tous les contenus premium !",
        )
    return sub


# ─────────────────────────────────────────────────────────────
# 🛒 Checkout
# ─────────────────────────────────────────────────────────────
def _line_item(plan: SubscriptionPlan) -> dict:
    price_data: dict = {
        "currency": plan.currency,
        "product_data": {"name": plan.name, "description": f"Abonnement Yunoa - {plan.name}"},
        "unit_amount": plan.price_cents,
    }
    if plan.interval != PlanInterval.LIFETIME.value:
        price_data["recurring"] = {"interval": plan.interval}
    return {"price_data": price_data, "quantity": 1}


async def create_subscription(
    db: AsyncSession,
    user: User,
    payload: CreateSubscriptionRequest,
    *,
    origin: Optional[str] = None,
) -> CreateSubscriptionResponse:
    scope = "CREATE-SUBSCRIPTION"
    method = payload.payment_method
    _log_step(scope, "Request data", {"userId": user.id, "planId": payload.plan_id, "paymentMethod": method.value})

    plan = (
        await db.execute(
            select(SubscriptionPlan).where(
                SubscriptionPlan.id == payload.plan_id, SubscriptionPlan.is_active.is_(True)
            )
        )
    ).scalar_one_or_none()
    if plan is None:
        raise BadRequestException("Plan introuvable ou inactif", code="PLAN_NOT_FOUND")
    if await get_active_subscription(db, user.id) is not None:
        raise BadRequestException("Vous avez déjà un abonnement actif", code="ALREADY_SUBSCRIBED")
    if method == PaymentMethod.ADMIN_GIFT:
        raise BadRequestException("Méthode de paiement non supportée", code="UNSUPPORTED_PAYMENT_METHOD")

    base = (origin or settings.frontend_url_str).rstrip("/")
    is_recurring = plan.interval != PlanInterval.LIFETIME.value

    if method in (PaymentMethod.CARD, PaymentMethod.PAYPAL):
        customer_id = await stripe_gateway.find_or_create_customer(user.email, str(user.id))
        params: dict[str, Any] = {
            "customer": customer_id,
            "line_items": [_line_item(plan)],
            "mode": "subscription" if is_recurring else "payment",
            "success_url": f"{base}/subscription/success?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{base}/subscription/cancel",
            "metadata": {"user_id": str(user.id), "plan_id": str(plan.id), "payment_method": method.value},
        }
        if method == PaymentMethod.PAYPAL:
            params["payment_method_types"] = ["card", "paypal"]
        session = await stripe_gateway.create_checkout_session(**params)
        provider = PaymentProvider.STRIPE
        provider_session_id = field(session, "id")
        payment_url = field(session, "url")
        _log_step(scope, "Stripe session created", {"sessionId": provider_session_id})
    else:
        provider = PaymentProvider.PAYSAFECARD
        provider_session_id = str(uuid4())
        query = urlencode(
            {
                "payment_id": provider_session_id,
                "amount": plan.price_cents,
                "currency": plan.currency,
                "plan": plan.name,
            }
        )
        payment_url = f"{base}/payment/paysafecard?{query}"
        _log_step(scope, "Paysafecard payment created", {"paymentId": provider_session_id})

    db.add(
        Payment(
            user_id=user.id,
            plan_id=plan.id,
            provider=provider.value,
            provider_session_id=provider_session_id,
            amount_cents=plan.price_cents,
            currency=plan.currency,
            status=PaymentStatus.PENDING.value,
            is_recurring=is_recurring,
        )
    )
    await upsert_billing_settings(db, user.id, method)
    await db.commit()

    return CreateSubscriptionResponse(payment_url=payment_url, plan_name=plan.name)


# ─────────────────────────────────────────────────────────────
# ✅ Verification after redirect
# ─────────────────────────────────────────────────────────────
async def _payment_for(db: AsyncSession, user_id: UUID, provider_session_id: str) -> Optional[Payment]:
    stmt = select(Payment).where(
        Payment.provider_session_id == provider_session_id,
        Payment.user_id == user_id,
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def verify_payment(db: AsyncSession, user: User, payload: VerifyPaymentRequest) -> VerifyPaymentResponse:
    scope = "VERIFY-PAYMENT"
    if not payload.session_id and not payload.payment_id:
        raise BadRequestException("session_id ou payment_id requis")

    if payload.session_id:
        session = await stripe_gateway.retrieve_checkout_session(payload.session_id)
        payment_status = field(session, "payment_status")
        _log_step(scope, "Stripe session retrieved", {"sessionId": payload.session_id, "status": payment_status})
        if payment_status != "paid":
            return VerifyPaymentResponse(payment_verified=False, subscription_active=False)

        payment = await _payment_for(db, user.id, payload.session_id)
        if payment is None:
            logger.warning("[%s] No payment row for session %s", scope, payload.session_id)
            return VerifyPaymentResponse(payment_verified=True, subscription_active=False)

        already_paid = payment.status == PaymentStatus.PAID.value
        if already_paid and await get_active_subscription(db, user.id) is not None:
            return VerifyPaymentResponse(payment_verified=True, subscription_active=True)

        payment.status = PaymentStatus.PAID.value
        plan = await db.get(SubscriptionPlan, payment.plan_id)
        method = field(field(session, "metadata", {}), "payment_method", PaymentMethod.CARD.value)
        await activate_subscription(
            db,
            user_id=user.id,
            plan=plan,
            payment_method=method,
            email=user.email,
            stripe_customer_id=field(session, "customer"),
        )
        await db.commit()
        _log_step(scope, "Subscription activated successfully", {"userId": user.id, "planName": plan.name})
        return VerifyPaymentResponse(payment_verified=True, subscription_active=True)

    payment = await _payment_for(db, user.id, payload.payment_id)
    if payment is None or payment.status != PaymentStatus.PAID.value:
        return VerifyPaymentResponse(payment_verified=False, subscription_active=False)

    if await get_active_subscription(db, user.id) is None:
        plan = await db.get(SubscriptionPlan, payment.plan_id)
        await activate_subscription(
            db,
            user_id=user.id,
            plan=plan,
            payment_method=PaymentMethod.PAYSAFECARD.value,
            email=user.email,
        )
        await db.commit()
        _log_step(scope, "Paysafecard subscription activated", {"userId": user.id, "planName": plan.name})
    return VerifyPaymentResponse(payment_verified=True, subscription_active=True)


# ─────────────────────────────────────────────────────────────
# 🎁 Admin gifts
# ─────────────────────────────────────────────────────────────
async def give_subscription(db: AsyncSession, payload: GiveSubscriptionRequest, *, admin: User) -> GiveSubscriptionResponse:
    scope = "GIVE-SUBSCRIPTION"
    plan_code = PLAN_CODE_ALIASES.get(payload.plan_code, payload.plan_code)
    _log_step(scope, "Request parsed", {"adminId": admin.id, "userId": payload.user_id, "planCode": plan_code})

    target = await db.get(User, payload.user_id)
    if target is None:
        raise NotFoundException("Utilisateur non trouvé")

    plan = (
        await db.execute(
            select(SubscriptionPlan).where(
                SubscriptionPlan.code == plan_code, SubscriptionPlan.is_active.is_(True)
            )
        )
    ).scalar_one_or_none()
    if plan is None:
        codes = (
            await db.execute(
                select(SubscriptionPlan.code)
                .where(SubscriptionPlan.is_active.is_(True))
                .order_by(SubscriptionPlan.code)
            )
        ).scalars().all()
        raise NotFoundException(
            f"Plan '{plan_code}' introuvable ou inactif. Plans disponibles : {', '.join(codes)}",
            code="PLAN_NOT_FOUND",
        )

    now = utcnow()
    if plan_code == LIFETIME_CODE:
        end = add_years(now, LIFETIME_GIFT_YEARS)
    else:
        end = add_months(now, payload.duration_months)

    sub = await get_active_subscription(db, target.id)
    if sub is None:
        sub = Subscription(
            user_id=target.id,
            status=SubscriptionStatus.ACTIVE.value,
            current_period_start=now,
        )
        db.add(sub)
        _log_step(scope, "Created new subscription")
    else:
        _log_step(scope, "Updated existing subscription", {"subscriptionId": sub.id})
    sub.plan_id = plan.id
    sub.current_period_end = end
    sub.payment_method = PaymentMethod.ADMIN_GIFT.value
    sub.auto_renew = False

    await upsert_subscriber(
        db,
        user_id=target.id,
        subscribed=True,
        tier=plan.name,
        subscription_end=end,
        email=target.email,
    )
    await db.commit()
    _log_step(scope, "Subscription granted successfully", {"userId": target.id, "planName": plan.name})

    return GiveSubscriptionResponse(
        message=f"Abonnement {plan.name} offert à {target.username}",
        subscription_end=end,
    )


__all__ = [
    "period_end",
    "list_plans",
    "get_active_subscription",
    "my_subscription",
    "upsert_subscriber",
    "upsert_billing_settings",
    "activate_subscription",
    "create_subscription",
    "verify_payment",
    "give_subscription",
]
