from __future__ import annotations

"""
Renewal reminders
=================

Walks active subscriptions that have an end date and, when the expiry is
`0 < days <= notify_before_days`, drops an in-app notification:

- manual reminder when paying by paysafecard or auto-renew is off
- auto-renew heads-up (with the amount) otherwise

A reminder with the same title sent to the same user in the last 24h is
not repeated. Runs on demand (admin route) and on an APScheduler interval
(`app/utils/reminder_scheduler.py`).
"""

import json
import logging
import math
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.models.billing import BillingSettings, Subscription, SubscriptionPlan
from app.schemas.billing import RenewalRemindersResponse
from app.schemas.enums import PaymentMethod, SubscriptionStatus
from app.services.notification_service import add_notification, sent_recently
from app.utils.dates import as_utc, utcnow

logger = logging.getLogger(__name__)

MANUAL_TITLE = "⏰ Renouvellement requis"
AUTO_TITLE = "🔄 Renouvellement automatique"
DEDUP_WINDOW = timedelta(hours=24)
SECONDS_PER_DAY = 24 * 60 * 60


def _log_step(step: str, details: dict | None = None) -> None:
    suffix = f" - {json.dumps(details, default=str)}" if details else ""
    logger.info("[RENEWAL-REMINDERS] %s%s", step, suffix)


def days_until(end, now) -> int:
    return math.ceil((as_utc(end) - now).total_seconds() / SECONDS_PER_DAY)


def reminder_for(
    sub: Subscription,
    plan: SubscriptionPlan,
    prefs: BillingSettings | None,
    days: int,
) -> tuple[str, str]:
    """(title, message) for one subscription."""
    auto_renew = prefs.auto_renew_for(sub.payment_method) if prefs is not None else None
    if auto_renew is None:
        auto_renew = True

    if sub.payment_method == PaymentMethod.PAYSAFECARD.value or not auto_renew:
        return (
            MANUAL_TITLE,
            f"Votre abonnement {plan.name} expire dans {days} jour(s). Veuillez le renouveler "
            "manuellement pour continuer à profiter de nos services.",
        )
    return (
        AUTO_TITLE,
        f"Votre abonnement {plan.name} sera renouvelé automatiquement dans {days} jour(s) "
        f"via {sub.payment_method}. Montant: {plan.price_cents / 100:.2f}€.",
    )


async def run_renewal_reminders(db: AsyncSession) -> RenewalRemindersResponse:
    now = utcnow()
    rows = (
        await db.execute(
            select(Subscription, SubscriptionPlan, BillingSettings)
            .join(SubscriptionPlan, SubscriptionPlan.id == Subscription.plan_id)
            .outerjoin(BillingSettings, BillingSettings.user_id == Subscription.user_id)
            .where(
                Subscription.status == SubscriptionStatus.ACTIVE.value,
                Subscription.current_period_end.is_not(None),
            )
        )
    ).all()
    _log_step("Found subscriptions", {"count": len(rows)})

    sent = 0
    for sub, plan, prefs in rows:
        days = days_until(sub.current_period_end, now)
        notify_days = (prefs.notify_before_days if prefs is not None else None) or settings.RENEWAL_NOTIFY_BEFORE_DAYS
        if not 0 < days <= notify_days:
            continue

        title, message = reminder_for(sub, plan, prefs, days)
        if await sent_recently(db, sub.user_id, title, within=DEDUP_WINDOW):
            _log_step("Reminder already sent recently", {"userId": sub.user_id})
            continue

        add_notification(db, sub.user_id, title, message)
        sent += 1
        _log_step("Reminder queued", {"userId": sub.user_id, "days": days, "title": title})

    await db.commit()
    _log_step("Completed", {"remindersSent": sent, "subscriptionsChecked": len(rows)})
    return RenewalRemindersResponse(reminders_sent=sent, subscriptions_checked=len(rows))


__all__ = ["days_until", "reminder_for", "run_renewal_reminders"]
