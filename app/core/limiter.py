from __future__ import annotations

"""
Yunoa — HTTP Rate Limiting (SlowAPI)
====================================

Highlights
----------
- **User/IP aware** keying: per-user once auth set `request.state.user_id`,
  else per-client-IP (X-Forwarded-For / X-Real-IP / client.host).
- **Exemptions**: health/docs/static/subtitle files.
- **Test friendly**: `RATE_LIMIT_TEST_BYPASS` disables decorated limits at
  request time, so a single test can flip it back on.
- **Backends**: Redis via `RATELIMIT_STORAGE_URI`, in-memory fallback.

The login brute-force guard (`app.services.auth.brute_force`) is a separate,
account-aware mechanism; this module only throttles request volume.

Environment
-----------
RATE_LIMIT_ENABLED           default: "true"
DEFAULT_RATE_LIMIT           default: "100/minute"
RATELIMIT_STORAGE_URI        default: "" (falls back to "memory://")
RATE_LIMIT_SKIP_PATHS        default: "/healthz,/readyz,/docs,/openapi.json,/subtitles/"
RATE_LIMIT_TEST_BYPASS       default: "" (truthy to bypass in tests/CI)

Usage
-----
    @router.post("/login")
    @rate_limit("5/minute")
    async def login(request: Request, response: Response, ...): ...
"""

import os
from typing import Callable, List, Optional

from dotenv import load_dotenv
from loguru import logger
from slowapi import Limiter
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.requests import Request

load_dotenv()

_TRUTHY = {"1", "true", "yes", "on"}

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() in _TRUTHY
DEFAULT_LIMIT = os.getenv("DEFAULT_RATE_LIMIT", "100/minute").strip()
STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "").strip()

SKIP_PATHS: List[str] = [
    p.strip()
    for p in os.getenv(
        "RATE_LIMIT_SKIP_PATHS",
        "/healthz,/readyz,/docs,/openapi.json,/subtitles/",
    ).split(",")
    if p.strip()
]


# ──────────────────────────────────────────────────────────────
# 🧠 Keying & exemptions
# ──────────────────────────────────────────────────────────────
def client_ip(request: Request) -> str:
    """Best-effort client IP: first XFF hop, then X-Real-IP, then the socket peer."""
    xff = request.headers.get("x-forwarded-for")
    if xff:
        ip = xff.split(",")[0].strip()
        if ip:
            return ip
    xri = request.headers.get("x-real-ip")
    if xri and xri.strip():
        return xri.strip()
    return get_remote_address(request) or "unknown"


def get_user_rate_limit_key(request: Request) -> str:
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{client_ip(request)}"


def should_exempt_request(request: Optional[Request]) -> bool:
    """Exempt when limits are off, the path is skipped, or the test bypass is set."""
    if os.getenv("RATE_LIMIT_ENABLED", "true").strip().lower() not in _TRUTHY:
        return True
    if os.getenv("RATE_LIMIT_TEST_BYPASS", "").strip().lower() in _TRUTHY:
        return True
    if request is None:
        return False
    path = request.url.path
    return any(path == p or (p.endswith("/") and path.startswith(p)) for p in SKIP_PATHS)


# ──────────────────────────────────────────────────────────────
# 🧰 Limiter instance (Redis / memory)
# ──────────────────────────────────────────────────────────────
def _default_limits() -> List[str]:
    return [chunk.strip() for chunk in DEFAULT_LIMIT.split(",") if chunk.strip()]


limiter = Limiter(
    key_func=get_user_rate_limit_key,
    default_limits=_default_limits(),
    headers_enabled=True,
    storage_uri=STORAGE_URI or "memory://",
)
logger.info(
    "RateLimiter ready | enabled={} | default={} | storage={}",
    RATE_LIMIT_ENABLED, _default_limits(), STORAGE_URI or "memory://",
)


# ──────────────────────────────────────────────────────────────
# 🎛 Decorators
# ──────────────────────────────────────────────────────────────
def _exempt_when(request: Optional[Request] = None) -> bool:
    return should_exempt_request(request)


def rate_limit(*limits: str) -> Callable:
    """
    Apply per-route limits with the app's exemptions.

    The decorated endpoint must accept `request: Request` and `response: Response`
    (SlowAPI injects `X-RateLimit-*` headers into the latter).
    """
    selected = list(limits) if limits else _default_limits()
    decorators = [limiter.limit(value, exempt_when=_exempt_when) for value in selected]

    def _apply(fn: Callable) -> Callable:
        for deco in reversed(decorators):
            fn = deco(fn)
        return fn

    return _apply


def rate_limit_exempt() -> Callable:
    """Explicitly exempt a route from limiting (webhooks, probes)."""
    return limiter.exempt


# ──────────────────────────────────────────────────────────────
# 🔧 Installer
# ──────────────────────────────────────────────────────────────
def install_rate_limiter(app) -> None:
    """Attach SlowAPI state + middleware (skipped when RATE_LIMIT_ENABLED is off)."""
    app.state.limiter = limiter
    if not RATE_LIMIT_ENABLED:
        logger.info("RateLimiter disabled by env; middleware not installed")
        return
    app.add_middleware(SlowAPIMiddleware)


__all__ = [
    "limiter",
    "rate_limit",
    "rate_limit_exempt",
    "install_rate_limiter",
    "client_ip",
    "should_exempt_request",
]
