from __future__ import annotations

"""
Stripe webhook handling
=======================

`handle_event` dispatches a verified event (see
`stripe_gateway.construct_event`) to one of:

- checkout.session.completed  → payment paid + subscription activated
- invoice.payment_succeeded   → period copied from the Stripe subscription
- invoice.payment_failed      → "❌ Échec du paiement" notification
- customer.subscription.deleted → subscription canceled, subscriber cleared

Anything else is logged and acknowledged.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.billing import Payment, Subscriber, Subscription, SubscriptionPlan
from app.schemas.enums import PaymentMethod, PaymentStatus, SubscriptionStatus
from app.services.billing import stripe_gateway
from app.services.billing.stripe_gateway import field
from app.services.billing.subscription_service import activate_subscription, upsert_subscriber
from app.services.notification_service import add_notification
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)

PAYMENT_FAILED_TITLE = "❌ Échec du paiement"
PAYMENT_FAILED_MESSAGE = (
    "Le paiement de votre abonnement a échoué. Veuillez mettre à jour vos informations "
    "de paiement pour éviter l'interruption du service."
)


def _log_step(step: str, details: Optional[dict] = None) -> None:
    suffix = f" - {json.dumps(details, default=str)}" if details else ""
    logger.info("[STRIPE-WEBHOOK] %s%s", step, suffix)


def _as_uuid(value: Any) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def _from_epoch(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


async def _subscriber_for_customer(db: AsyncSession, customer_id: Optional[str]) -> Optional[Subscriber]:
    if not customer_id:
        return None
    stmt = select(Subscriber).where(Subscriber.stripe_customer_id == customer_id).limit(1)
    return (await db.execute(stmt)).scalar_one_or_none()


# ─────────────────────────────────────────────────────────────
# 📨 Event handlers
# ─────────────────────────────────────────────────────────────
async def _checkout_completed(db: AsyncSession, session: Dict[str, Any]) -> None:
    _log_step("Checkout session completed", {"sessionId": field(session, "id")})
    metadata = field(session, "metadata", {})
    user_id = _as_uuid(field(metadata, "user_id"))
    plan_id = _as_uuid(field(metadata, "plan_id"))
    method = field(metadata, "payment_method", PaymentMethod.CARD.value)
    if user_id is None or plan_id is None:
        _log_step("Missing metadata", {"userId": user_id, "planId": plan_id})
        return

    plan = await db.get(SubscriptionPlan, plan_id)
    if plan is None:
        _log_step("Plan not found", {"planId": plan_id})
        return

    await db.execute(
        update(Payment)
        .where(Payment.provider_session_id == field(session, "id"))
        .values(status=PaymentStatus.PAID.value)
    )
    await activate_subscription(
        db,
        user_id=user_id,
        plan=plan,
        payment_method=method,
        email=field(field(session, "customer_details", {}), "email"),
        stripe_customer_id=field(session, "customer"),
        notify=False,
    )
    await db.commit()
    _log_step("Subscription created successfully", {"userId": user_id, "planId": plan_id})


async def _invoice_succeeded(db: AsyncSession, invoice: Dict[str, Any]) -> None:
    subscription_id = field(invoice, "subscription")
    if not subscription_id:
        return
    stripe_sub = await stripe_gateway.retrieve_subscription(subscription_id)
    subscriber = await _subscriber_for_customer(db, field(stripe_sub, "customer"))
    if subscriber is None:
        return

    await db.execute(
        update(Subscription)
        .where(Subscription.user_id == subscriber.user_id)
        .values(
            current_period_start=_from_epoch(field(stripe_sub, "current_period_start")),
            current_period_end=_from_epoch(field(stripe_sub, "current_period_end")),
            status=SubscriptionStatus.ACTIVE.value,
            updated_at=utcnow(),
        )
    )
    await db.commit()
    _log_step("Subscription renewed", {"userId": subscriber.user_id})


async def _invoice_failed(db: AsyncSession, invoice: Dict[str, Any]) -> None:
    subscription_id = field(invoice, "subscription")
    if not subscription_id:
        return
    stripe_sub = await stripe_gateway.retrieve_subscription(subscription_id)
    subscriber = await _subscriber_for_customer(db, field(stripe_sub, "customer"))
    if subscriber is None:
        return

    add_notification(db, subscriber.user_id, PAYMENT_FAILED_TITLE, PAYMENT_FAILED_MESSAGE)
    await db.commit()
    _log_step("Payment failed notification sent", {"userId": subscriber.user_id})


async def _subscription_deleted(db: AsyncSession, subscription: Dict[str, Any]) -> None:
    subscriber = await _subscriber_for_customer(db, field(subscription, "customer"))
    if subscriber is None:
        return

    await db.execute(
        update(Subscription)
        .where(Subscription.user_id == subscriber.user_id)
        .values(status=SubscriptionStatus.CANCELED.value, updated_at=utcnow())
    )
    await upsert_subscriber(
        db,
        user_id=subscriber.user_id,
        subscribed=False,
        tier=None,
        subscription_end=None,
    )
    await db.commit()
    _log_step("Subscription canceled", {"userId": subscriber.user_id})


Handler = Callable[[AsyncSession, Dict[str, Any]], Awaitable[None]]

HANDLERS: Dict[str, Handler] = {
    "checkout.session.completed": _checkout_completed,
    "invoice.payment_succeeded": _invoice_succeeded,
    "invoice.payment_failed": _invoice_failed,
    "customer.subscription.deleted": _subscription_deleted,
}


async def handle_event(db: AsyncSession, event: Dict[str, Any]) -> None:
    event_type = field(event, "type")
    _log_step("Event type", {"type": event_type, "id": field(event, "id")})
    handler = HANDLERS.get(event_type)
    if handler is None:
        _log_step("Unhandled event type", {"type": event_type})
        return
    await handler(db, field(field(event, "data", {}), "object", {}))


async def process_webhook(db: AsyncSession, payload: bytes, signature: Optional[str]) -> None:
    _log_step("Webhook received")
    event = stripe_gateway.construct_event(payload, signature)
    await handle_event(db, event)


__all__ = ["HANDLERS", "handle_event", "process_webhook"]
