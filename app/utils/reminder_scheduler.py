from __future__ import annotations

"""
Yunoa — renewal reminder scheduler
----------------------------------
- APScheduler interval job calling `run_renewal_reminders`
- Single-run across replicas via a Redis lock
- Started/stopped from the app lifespan when RENEWAL_REMINDERS_ENABLED
"""

import logging
from datetime import timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.core.config import settings
from app.core.redis_client import redis_wrapper
from app.db.session import transactional_async_session
from app.services.billing.reminder_service import run_renewal_reminders

logger = logging.getLogger("renewal-reminders")

_LOCK_KEY = "maintenance:renewal-reminders:lock"
_LOCK_TTL_SECONDS = 300
_JOB_ID = "renewal_reminders"

_scheduler: Optional[AsyncIOScheduler] = None


# ─────────────────────────────────────────────
# ⏰ Job
# ─────────────────────────────────────────────
async def send_renewal_reminders_job() -> None:
    """One pass of reminders; skipped when another worker holds the lock."""
    try:
        async with redis_wrapper.lock(_LOCK_KEY, timeout=_LOCK_TTL_SECONDS, blocking_timeout=2):
            async with transactional_async_session() as db:
                result = await run_renewal_reminders(db)
    except TimeoutError:
        logger.debug("Renewal reminders already running elsewhere; skipping")
        return

    if result.reminders_sent:
        logger.info(
            "Renewal reminders: sent=%s checked=%s",
            result.reminders_sent, result.subscriptions_checked,
        )
    else:
        logger.debug("Renewal reminders: nothing to send (checked=%s)", result.subscriptions_checked)


# ─────────────────────────────────────────────
# 🚦 Lifecycle
# ─────────────────────────────────────────────
def start_reminder_scheduler(
    *,
    interval_minutes: Optional[int] = None,
    jitter_seconds: int = 15,
) -> Optional[AsyncIOScheduler]:
    """
    Start the interval job (idempotent).

    Args:
        interval_minutes: override interval; defaults to RENEWAL_REMINDER_INTERVAL_MINUTES.
        jitter_seconds: small randomization so replicas do not fire together.
    """
    global _scheduler
    if _scheduler is not None:
        return _scheduler

    minutes = interval_minutes if interval_minutes is not None else settings.RENEWAL_REMINDER_INTERVAL_MINUTES

    scheduler = AsyncIOScheduler(timezone=timezone.utc)
    scheduler.add_job(
        send_renewal_reminders_job,
        IntervalTrigger(minutes=minutes, jitter=jitter_seconds, timezone=timezone.utc),
        id=_JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    _scheduler = scheduler
    logger.info("Renewal reminder scheduler started | interval=%sm, jitter=%ss", minutes, jitter_seconds)
    return scheduler


def stop_reminder_scheduler() -> None:
    global _scheduler
    if _scheduler is None:
        return
    _scheduler.shutdown(wait=False)
    _scheduler = None
    logger.info("Renewal reminder scheduler stopped")


__all__ = ["send_renewal_reminders_job", "start_reminder_scheduler", "stop_reminder_scheduler"]
