from __future__ import annotations

"""
Central enum definitions used across Yunoa.

Design notes
------------
• All enums subclass `str, PyEnum` for JSON-friendly serialization.
• VALUE STRINGS are **stable** once deployed: columns store them as plain
  strings guarded by CHECK constraints, so renaming one is a migration.
"""

from enum import Enum as PyEnum


# ──────────────────────────────────────────────────────────────
# Accounts
# ──────────────────────────────────────────────────────────────
class UserRole(str, PyEnum):
    USER = "user"
    ADMIN = "admin"


# ──────────────────────────────────────────────────────────────
# Catalog
# ──────────────────────────────────────────────────────────────
class VideoType(str, PyEnum):
    MOVIE = "movie"
    SERIES = "series"


class ActivityType(str, PyEnum):
    """Event kinds merged into a user's activity feed."""
    WATCH = "watch"
    FAVORITE = "favorite"
    RATE = "rate"


# ──────────────────────────────────────────────────────────────
# Billing
# ──────────────────────────────────────────────────────────────
class PlanInterval(str, PyEnum):
    MONTH = "month"
    YEAR = "year"
    LIFETIME = "lifetime"


class PaymentMethod(str, PyEnum):
    """What the user picked at checkout (plus the admin gift lane)."""
    CARD = "card"
    PAYPAL = "paypal"
    PAYSAFECARD = "paysafecard"
    ADMIN_GIFT = "admin_gift"


class PaymentProvider(str, PyEnum):
    STRIPE = "stripe"
    PAYSAFECARD = "paysafecard"


class PaymentStatus(str, PyEnum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class SubscriptionStatus(str, PyEnum):
    ACTIVE = "active"
    CANCELED = "canceled"
    EXPIRED = "expired"


__all__ = [
    "UserRole",
    "VideoType",
    "ActivityType",
    "PlanInterval",
    "PaymentMethod",
    "PaymentProvider",
    "PaymentStatus",
    "SubscriptionStatus",
]
