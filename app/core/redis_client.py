# app/core/redis_client.py
from __future__ import annotations

"""
Yunoa — Redis Client (async)
============================
Single source of truth for Redis access.

What lives in Redis
-------------------
• Login brute-force counters (`bf:user:<name>`, `bf:ip:<ip>`)
• HLS playback sessions (`hls:session:<sid>`, JSON with TTL)
• Revoked JWT ids (`revoked:jti:<jti>`)
• Scheduler locks (renewal reminders run once per cluster)

Public API (imported as `redis_wrapper`)
----------------------------------------
- await redis_wrapper.connect() / close() / is_connected()
- redis_wrapper.client
- await redis_wrapper.incr_with_ttl(key, ttl_seconds)
- await redis_wrapper.json_set(key, value, ttl_seconds=None) / json_get(key, default=None)
- async with redis_wrapper.lock(name, timeout=60, blocking_timeout=0): ...
"""

import asyncio
import json
import logging
import os
import random
import secrets
import time
from contextlib import asynccontextmanager
from typing import Any, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from app.core.config import settings

logger = logging.getLogger("redis")

MAX_RETRIES = int(os.getenv("REDIS_CONNECT_MAX_RETRIES", "5"))
BASE_DELAY = float(os.getenv("REDIS_CONNECT_BASE_DELAY", "0.3"))  # seconds
HEALTH_CHECK_INTERVAL = int(os.getenv("REDIS_HEALTH_CHECK_INTERVAL", "30"))
SOCKET_TIMEOUT = float(os.getenv("REDIS_SOCKET_TIMEOUT", "3"))
POOL_MAX_CONNECTIONS = int(os.getenv("REDIS_POOL_MAX_CONNECTIONS", "64"))
CLIENT_NAME = os.getenv("REDIS_CLIENT_NAME", "yunoa-api")


class RedisClient:
    """
    Redis connection manager (asyncio) with the few helpers the app needs.

    Connect retries with exponential backoff + jitter; `client` raises if
    `connect()` never ran so misconfiguration fails loudly.
    """

    def __init__(self, redis_url: str):
        self.redis_url = redis_url
        self._client: Optional[redis.Redis] = None

    # ── lifecycle ────────────────────────────────────────────────────────────
    async def connect(self) -> None:
        """
        Establish a connection with retries.

        Steps
        -----
        - **[Step 1]** Reuse a healthy client when possible.
        - **[Step 2]** Attempt connection with backoff and jitter.
        """
        # ── [Step 1] Reuse an existing healthy client ───────────────────────
        if self._client is not None:
            try:
                await self._client.ping()
                return
            except RedisError:
                self._client = None

        # ── [Step 2] Retry with backoff ─────────────────────────────────────
        last_err: Optional[Exception] = None
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                client = redis.Redis.from_url(
                    self.redis_url,
                    decode_responses=True,
                    health_check_interval=HEALTH_CHECK_INTERVAL,
                    socket_timeout=SOCKET_TIMEOUT,
                    socket_connect_timeout=SOCKET_TIMEOUT,
                    retry_on_timeout=True,
                    max_connections=POOL_MAX_CONNECTIONS,
                    client_name=CLIENT_NAME,
                )
                await client.ping()
                self._client = client
                logger.info("✅ Connected to Redis")
                return
            except (RedisError, OSError) as e:
                last_err = e
                delay = min(3.0, BASE_DELAY * (2 ** (attempt - 1))) + random.uniform(0, 0.25)
                logger.warning(
                    "Redis connect attempt %s/%s failed: %r (retrying in %.2fs)",
                    attempt, MAX_RETRIES, e, delay,
                )
                await asyncio.sleep(delay)

        logger.error("❌ Redis connection failed after %s retries.", MAX_RETRIES)
        raise RuntimeError("Redis connection failed") from last_err

    async def close(self) -> None:
        """Close the client and its pool."""
        if self._client is None:
            return
        try:
            await self._client.close()
            logger.info("🛑 Redis connection closed.")
        except RedisError as e:
            logger.warning("Error closing Redis connection: %s", e)
        finally:
            self._client = None

    async def is_connected(self) -> bool:
        """Return True if `PING` succeeds."""
        if self._client is None:
            return False
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False

    @property
    def client(self) -> redis.Redis:
        """Low-level client; `connect()` must have run at startup."""
        if self._client is None:
            raise RuntimeError("Redis client not initialized. Call connect() first.")
        return self._client

    # ── helpers ─────────────────────────────────────────────────────────────
    async def incr_with_ttl(self, key: str, ttl_seconds: int) -> int:
        """INCR a counter; the first hit starts its TTL window."""
        count = int(await self.client.incr(key))
        if count == 1:
            await self.client.expire(key, int(ttl_seconds))
        return count

    async def json_set(self, key: str, value: Any, *, ttl_seconds: Optional[int] = None) -> None:
        data = json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
        if ttl_seconds:
            await self.client.set(key, data, ex=int(ttl_seconds))
        else:
            await self.client.set(key, data)

    async def json_get(self, key: str, default: Any = None) -> Any:
        raw = await self.client.get(key)
        if raw is None:
            return default
        if isinstance(raw, (bytes, bytearray)):
            raw = raw.decode("utf-8", errors="replace")
        try:
            return json.loads(raw)
        except ValueError:
            return default

    @asynccontextmanager
    async def lock(
        self,
        name: str,
        *,
        timeout: int = 60,
        blocking_timeout: float = 0,
        sleep: float = 0.2,
    ):
        """
        Owner-token spin lock on `SET NX EX`.

        Raises the built-in `TimeoutError` when the lock is not acquired within
        `blocking_timeout` seconds (0 → a single attempt). Only the owner token
        releases the key.
        """
        rc = self.client
        token = secrets.token_hex(16)
        deadline = time.monotonic() + max(0.0, float(blocking_timeout))
        while True:
            if await rc.set(name, token, ex=int(timeout), nx=True):
                break
            if time.monotonic() >= deadline:
                raise TimeoutError(f"Failed to acquire lock: {name}")
            await asyncio.sleep(sleep)

        try:
            yield
        finally:
            try:
                if await rc.get(name) == token:
                    await rc.delete(name)
            except RedisError:
                logger.debug("Lock release failed for %s", name, exc_info=True)


redis_wrapper = RedisClient(settings.REDIS_URL)

__all__ = ["RedisClient", "redis_wrapper"]
