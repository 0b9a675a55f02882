# app/schemas/billing.py
"""
Subscription & payment DTOs.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import CamelModel
from app.schemas.enums import PaymentMethod


class PlanOut(CamelModel):
    id: UUID
    code: str
    name: str
    price_cents: int
    currency: str
    interval: str
    is_active: bool


class SubscriptionOut(CamelModel):
    id: UUID
    status: str
    payment_method: Optional[str] = None
    auto_renew: bool
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    plan: PlanOut


class MySubscriptionResponse(CamelModel):
    subscribed: bool
    subscription: Optional[SubscriptionOut] = None


class CreateSubscriptionRequest(CamelModel):
    plan_id: UUID
    payment_method: PaymentMethod = PaymentMethod.CARD


class CreateSubscriptionResponse(CamelModel):
    payment_url: str
    plan_name: str


class VerifyPaymentRequest(CamelModel):
    session_id: Optional[str] = None
    payment_id: Optional[str] = None


class VerifyPaymentResponse(CamelModel):
    payment_verified: bool
    subscription_active: bool


class GiveSubscriptionRequest(CamelModel):
    user_id: UUID
    plan_code: str = Field(..., min_length=1)
    duration_months: int = Field(1, ge=1, le=120)


class GiveSubscriptionResponse(CamelModel):
    success: bool = True
    message: str
    subscription_end: Optional[datetime] = None


class RenewalRemindersResponse(CamelModel):
    success: bool = True
    reminders_sent: int = 0
    subscriptions_checked: int = 0


class WebhookAck(CamelModel):
    received: bool = True
