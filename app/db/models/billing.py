from __future__ import annotations

"""
💳 Yunoa — Billing (plans, subscriptions, payments, subscriber mirror)
=====================================================================

State transitions are driven by the payment provider (Stripe webhooks or the
verify-payment call after checkout); the rows below are what the app reads
to decide whether someone is subscribed.

Tables
------
• `subscription_plans` — catalogue (`code` is the stable handle: basic_monthly,
  premium_monthly, lifetime, ...).
• `subscriptions` — one *active* row per user at a time (enforced in the service).
• `payments` — one row per checkout attempt; `provider_session_id` is the
  Stripe Checkout Session id or the paysafecard payment uuid.
• `subscribers` — denormalized per-user mirror (tier, end date, Stripe customer)
  used to map Stripe customers back to users in webhooks.
• `billing_settings` — per-user preferred method, auto-renew flags and how many
  days before expiry a reminder is sent.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Uuid,
    false,
    func,
    true,
)
from sqlalchemy.orm import relationship

from app.db.base_class import Base, CreatedAtMixin, UUIDPKMixin
from app.utils.dates import utcnow


class SubscriptionPlan(UUIDPKMixin, Base):
    __tablename__ = "subscription_plans"

    code = Column(String(64), nullable=False, unique=True)
    name = Column(String(128), nullable=False)
    price_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="eur", server_default="eur")
    interval = Column(String(16), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())

    __table_args__ = (
        CheckConstraint("interval IN ('month', 'year', 'lifetime')", name="interval_valid"),
        CheckConstraint("price_cents >= 0", name="price_non_negative"),
    )


class Subscription(UUIDPKMixin, CreatedAtMixin, Base):
    __tablename__ = "subscriptions"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_id = Column(Uuid(as_uuid=True), ForeignKey("subscription_plans.id", ondelete="RESTRICT"), nullable=False)
    status = Column(String(16), nullable=False, default="active", server_default="active")
    payment_method = Column(String(32), nullable=True)
    auto_renew = Column(Boolean, nullable=False, default=True, server_default=true())
    current_period_start = Column(DateTime(timezone=True), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())

    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        CheckConstraint("status IN ('active', 'canceled', 'expired')", name="status_valid"),
        Index("ix_subscriptions_user_status", "user_id", "status"),
    )

    plan = relationship("SubscriptionPlan", lazy="selectin")


class Payment(UUIDPKMixin, CreatedAtMixin, Base):
    __tablename__ = "payments"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_id = Column(Uuid(as_uuid=True), ForeignKey("subscription_plans.id", ondelete="RESTRICT"), nullable=False)
    provider = Column(String(32), nullable=False)
    provider_session_id = Column(String(255), nullable=False, unique=True)
    amount_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(String(16), nullable=False, default="pending", server_default="pending")
    is_recurring = Column(Boolean, nullable=False, default=False, server_default=false())

    __table_args__ = (
        CheckConstraint("status IN ('pending', 'paid', 'failed')", name="status_valid"),
        CheckConstraint("provider IN ('stripe', 'paysafecard')", name="provider_valid"),
    )

    plan = relationship("SubscriptionPlan", lazy="selectin")


class Subscriber(UUIDPKMixin, Base):
    __tablename__ = "subscribers"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    email = Column(String(255), nullable=False, default="", server_default="")
    stripe_customer_id = Column(String(255), nullable=True, index=True)
    subscribed = Column(Boolean, nullable=False, default=False, server_default=false())
    subscription_tier = Column(String(128), nullable=True)
    subscription_end = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now())


class BillingSettings(Base):
    __tablename__ = "billing_settings"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    preferred_method = Column(String(32), nullable=True)
    card_auto_renew = Column(Boolean, nullable=True)
    paypal_auto_renew = Column(Boolean, nullable=True)
    paysafecard_auto_renew = Column(Boolean, nullable=True)
    notify_before_days = Column(Integer, nullable=False, default=2, server_default="2")

    __table_args__ = (CheckConstraint("notify_before_days >= 0", name="notify_non_negative"),)

    def auto_renew_for(self, method: str | None) -> bool | None:
        """Auto-renew flag for a payment method (None when never set)."""
        if not method:
            return None
        return getattr(self, f"{method}_auto_renew", None)
