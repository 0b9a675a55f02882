# app/db/models/__init__.py
"""
Yunoa ORM models.

Importing this package registers every table on `Base.metadata`
(Alembic autogenerate, `create_all` in tests).
"""

from app.db.base_class import Base

# ── Accounts & auth artifacts ──────────────────────────────────
from .user import User
from .auth_tokens import EmailVerificationCode, PasswordReset

# ── Catalog ────────────────────────────────────────────────────
from .video import Video
from .episode import Episode
from .subtitle import Subtitle
from .category import Category

# ── Engagement ─────────────────────────────────────────────────
from .engagement import Favorite, Rating, WatchHistory
from .notification import Notification

# ── Billing ────────────────────────────────────────────────────
from .billing import BillingSettings, Payment, Subscriber, Subscription, SubscriptionPlan

__all__ = [
    "Base",
    "User",
    "EmailVerificationCode",
    "PasswordReset",
    "Video",
    "Episode",
    "Subtitle",
    "Category",
    "Favorite",
    "Rating",
    "WatchHistory",
    "Notification",
    "SubscriptionPlan",
    "Subscription",
    "Payment",
    "Subscriber",
    "BillingSettings",
]
