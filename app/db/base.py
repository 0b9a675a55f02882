# app/db/base.py
"""
Yunoa — SQLAlchemy Base registry
================================

Import all ORM models so their tables are registered on `Base.metadata`.
Alembic's `env.py` imports `Base` from here.

Tip: Keep this file import-only; no runtime logic.
"""

from app.db.base_class import Base
from app.db.models import (  # noqa: F401
    BillingSettings,
    Category,
    EmailVerificationCode,
    Episode,
    Favorite,
    Notification,
    PasswordReset,
    Payment,
    Rating,
    Subscriber,
    Subscription,
    SubscriptionPlan,
    Subtitle,
    User,
    Video,
    WatchHistory,
)

__all__ = ["Base"]
