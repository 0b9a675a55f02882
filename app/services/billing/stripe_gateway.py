from __future__ import annotations

"""
Stripe gateway
==============

Thin async façade over the (blocking) `stripe` SDK. Every call runs in the
threadpool so the event loop never waits on Stripe's HTTP client.

Errors
------
- Stripe not configured → 503 `BILLING_DISABLED`
- Any `stripe.StripeError` → 502 (`UpstreamException`)
- Bad webhook signature → 400 (`construct_event`)
"""

import json
import logging
from typing import Any, Dict, Optional

import stripe
from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.exceptions import AppException, BadRequestException, UpstreamException

logger = logging.getLogger(__name__)

PAYMENT_PROVIDER_ERROR = "Erreur du fournisseur de paiement"


def field(obj: Any, key: str, default: Any = None) -> Any:
    """Read `key` from a Stripe object or a plain dict, tolerating absence."""
    if obj is None:
        return default
    try:
        value = obj[key]
    except (KeyError, TypeError, AttributeError):
        return default
    return default if value is None else value


def _configure() -> None:
    if not settings.stripe_enabled:
        raise AppException(
            status_code=503,
            message="Paiement indisponible",
            code="BILLING_DISABLED",
        )
    stripe.api_key = settings.STRIPE_SECRET_KEY.get_secret_value()
    stripe.api_version = settings.STRIPE_API_VERSION


async def _call(fn, *args, **kwargs):
    _configure()
    try:
        return await run_in_threadpool(fn, *args, **kwargs)
    except stripe.StripeError as e:
        logger.error("Stripe call %s failed: %s", getattr(fn, "__qualname__", fn), e)
        raise UpstreamException(PAYMENT_PROVIDER_ERROR)


# ─────────────────────────────────────────────────────────────
# 👤 Customers
# ─────────────────────────────────────────────────────────────
async def find_or_create_customer(email: str, user_id: str) -> str:
    """Stripe customer id for `email` (first match), created when missing."""
    listed = await _call(stripe.Customer.list, email=email, limit=1)
    data = field(listed, "data", [])
    if data:
        customer_id = field(data[0], "id")
        logger.info("[CREATE-SUBSCRIPTION] Existing customer found - %s", json.dumps({"customerId": customer_id}))
        return customer_id

    created = await _call(stripe.Customer.create, email=email, metadata={"user_id": user_id})
    customer_id = field(created, "id")
    logger.info("[CREATE-SUBSCRIPTION] New customer created - %s", json.dumps({"customerId": customer_id}))
    return customer_id


# ─────────────────────────────────────────────────────────────
# 🛒 Checkout & subscriptions
# ─────────────────────────────────────────────────────────────
async def create_checkout_session(**params: Any) -> Any:
    return await _call(stripe.checkout.Session.create, **params)


async def retrieve_checkout_session(session_id: str) -> Any:
    return await _call(stripe.checkout.Session.retrieve, session_id)


async def retrieve_subscription(subscription_id: str) -> Any:
    return await _call(stripe.Subscription.retrieve, subscription_id)


# ─────────────────────────────────────────────────────────────
# 🔏 Webhooks
# ─────────────────────────────────────────────────────────────
def construct_event(payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
    """Verify the `Stripe-Signature` header and return the event as a dict.

    The SDK does the verification; the event body itself is read back from
    the (now trusted) payload so handlers work on plain dicts.
    """
    secret = settings.STRIPE_WEBHOOK_SECRET.get_secret_value() if settings.STRIPE_WEBHOOK_SECRET else ""
    if not signature or not secret:
        raise BadRequestException("Missing stripe signature or webhook secret")
    try:
        stripe.Webhook.construct_event(payload, signature, secret)
    except (ValueError, stripe.SignatureVerificationError) as e:
        logger.warning("[STRIPE-WEBHOOK] Webhook signature verification failed - %s", e)
        raise BadRequestException("Webhook signature verification failed")
    return json.loads(payload)


__all__ = [
    "field",
    "find_or_create_customer",
    "create_checkout_session",
    "retrieve_checkout_session",
    "retrieve_subscription",
    "construct_event",
]
