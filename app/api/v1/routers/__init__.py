"""
🧭✨ Yunoa • API v1 Router Aggregator
====================================

Exports both the **combined `router`** (ready to include) and each **individual
sub-router** so callers can mount them as needed.

Quick usage
-----------
    from app.api.v1.routers import router as v1_router
    app.include_router(v1_router, prefix="/api/v1")

Or with the factory:

    from app.api.v1.routers import build_v1_router
    app.include_router(build_v1_router(), prefix="/api/v1")

Ordering
--------
Streaming routers (`/videos/stream-url`, `/videos/hls/...`, `/videos/{id}/stream`)
are included before the catalog so their literal paths win over
`/videos/{video_id}`.

Security notes
--------------
- 🔐 This layer is a pure aggregator; **auth & rate limits live in child routers**.
- 🧊 If a child router sets sensitive cache headers, those are preserved here.
"""

from fastapi import APIRouter

from .auth.login import router as auth_router
from .auth.email_verification import router as email_verification_router
from .auth.password_reset import router as password_reset_router
from .streaming.stream import router as stream_router
from .streaming.hls import router as hls_router
from .catalog.videos import router as videos_router
from .catalog.episodes import router as episodes_router
from .catalog.subtitles import router as subtitles_router
from .catalog.categories import router as categories_router
from .engagement.favorites import router as engagement_router
from .engagement.notifications import router as notifications_router
from .users import router as users_router
from .billing.subscriptions import router as subscriptions_router
from .billing.stripe_webhook import router as stripe_webhook_router
from .admin import router as admin_router


# ─────────────────────────────────────────────────────────────────────────────
# 🧩 Factory: build a combined v1 router with stable path layout
# ─────────────────────────────────────────────────────────────────────────────
def build_v1_router() -> APIRouter:
    """
    Compose the API v1 surface into a single `APIRouter`.

    Returns
    -------
    fastapi.APIRouter
        Auth, streaming, catalog, engagement, users, billing, and admin
        endpoints under `/admin`.
    """
    r = APIRouter()

    # 🔐 Auth
    r.include_router(auth_router)
    r.include_router(email_verification_router)
    r.include_router(password_reset_router)

    # 📡 Streaming first: literal /videos/... paths
    r.include_router(stream_router)
    r.include_router(hls_router)

    # 🎬 Catalog
    r.include_router(videos_router)
    r.include_router(episodes_router)
    r.include_router(subtitles_router)
    r.include_router(categories_router)

    # ❤️ Engagement & users
    r.include_router(engagement_router)
    r.include_router(notifications_router)
    r.include_router(users_router)

    # 💳 Billing
    r.include_router(subscriptions_router)
    r.include_router(stripe_webhook_router)

    # 🛡️ Admin
    r.include_router(admin_router, prefix="/admin")

    return r


# ─────────────────────────────────────────────────────────────────────────────
# 📦 Default export
# ─────────────────────────────────────────────────────────────────────────────
router = build_v1_router()


__all__ = [
    "router",
    "build_v1_router",
    "auth_router",
    "email_verification_router",
    "password_reset_router",
    "stream_router",
    "hls_router",
    "videos_router",
    "episodes_router",
    "subtitles_router",
    "categories_router",
    "engagement_router",
    "notifications_router",
    "users_router",
    "subscriptions_router",
    "stripe_webhook_router",
    "admin_router",
]
