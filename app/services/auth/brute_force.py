from __future__ import annotations

"""
Login brute-force guard
=======================

Two Redis counters per login attempt:

- `bf:user:<username>` — LOGIN_MAX_USER_ATTEMPTS failures block that account
  for LOGIN_USER_BLOCK_SECONDS.
- `bf:ip:<ip>` — LOGIN_MAX_IP_ATTEMPTS failures block the client IP for
  LOGIN_IP_BLOCK_SECONDS.

A counter's TTL doubles as the block window: when a counter reaches its
threshold the key is re-armed with the full block duration, and `Retry-After`
is read back from the remaining TTL.

Redis hiccups degrade to "no throttling" (logged); the route-level SlowAPI
limit still applies.
"""

import logging

from redis.exceptions import RedisError

from app.core.config import settings
from app.core.exceptions import TooManyAttemptsException
from app.core.redis_client import redis_wrapper

logger = logging.getLogger("auth")

USER_PREFIX = "bf:user:"
IP_PREFIX = "bf:ip:"


def _user_key(username: str) -> str:
    return f"{USER_PREFIX}{(username or '').strip().lower()}"


def _ip_key(ip: str) -> str:
    return f"{IP_PREFIX}{ip or 'unknown'}"


async def _blocked_for(key: str, threshold: int) -> int:
    """Seconds left on the block for `key`, 0 when not blocked."""
    rc = redis_wrapper.client
    raw = await rc.get(key)
    if raw is None or int(raw) < threshold:
        return 0
    ttl = int(await rc.ttl(key))
    return ttl if ttl > 0 else 1


async def ensure_not_blocked(username: str, ip: str) -> None:
    """Raise 429 while either the account or the IP is blocked."""
    try:
        user_wait = await _blocked_for(_user_key(username), settings.LOGIN_MAX_USER_ATTEMPTS)
        ip_wait = await _blocked_for(_ip_key(ip), settings.LOGIN_MAX_IP_ATTEMPTS)
    except (RedisError, RuntimeError) as e:
        logger.warning("Brute-force check skipped (redis unavailable): %s", e)
        return

    wait = max(user_wait, ip_wait)
    if wait:
        logger.warning("Login blocked user=%s ip=%s retry_after=%ss", username, ip, wait)
        raise TooManyAttemptsException(retry_after_seconds=wait)


async def record_failure(username: str, ip: str) -> None:
    """Count a failed attempt against both the account and the IP."""
    try:
        rc = redis_wrapper.client
        lanes = (
            (_user_key(username), settings.LOGIN_MAX_USER_ATTEMPTS, settings.LOGIN_USER_BLOCK_SECONDS),
            (_ip_key(ip), settings.LOGIN_MAX_IP_ATTEMPTS, settings.LOGIN_IP_BLOCK_SECONDS),
        )
        for key, threshold, block_seconds in lanes:
            count = await redis_wrapper.incr_with_ttl(key, block_seconds)
            if count == threshold:
                await rc.expire(key, block_seconds)
                logger.warning("Brute-force threshold reached for %s (block %ss)", key, block_seconds)
    except (RedisError, RuntimeError) as e:
        logger.warning("Brute-force failure not recorded (redis unavailable): %s", e)


async def record_success(username: str, ip: str) -> None:
    """Clear the account counter and give the IP one attempt back."""
    try:
        rc = redis_wrapper.client
        await rc.delete(_user_key(username))
        ip_key = _ip_key(ip)
        if int(await rc.get(ip_key) or 0) > 0:
            await rc.decr(ip_key)
    except (RedisError, RuntimeError) as e:
        logger.warning("Brute-force reset skipped (redis unavailable): %s", e)


__all__ = ["ensure_not_blocked", "record_failure", "record_success"]
