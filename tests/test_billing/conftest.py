from datetime import timedelta

import pytest

from app.db.models.billing import Subscription
from app.services.billing import stripe_gateway
from app.utils.dates import utcnow


class FakeStripe:
    """Records gateway calls and returns canned Stripe objects."""

    def __init__(self) -> None:
        self.checkout_params = None
        self.sessions = {}
        self.subscriptions = {}

    async def find_or_create_customer(self, email: str, user_id: str) -> str:
        return "cus_test"

    async def create_checkout_session(self, **params):
        self.checkout_params = params
        return {"id": "cs_test_1", "url": "https://checkout.stripe.test/c/cs_test_1"}

    async def retrieve_checkout_session(self, session_id: str):
        return self.sessions[session_id]

    async def retrieve_subscription(self, subscription_id: str):
        return self.subscriptions[subscription_id]


@pytest.fixture
def fake_stripe(monkeypatch) -> FakeStripe:
    fake = FakeStripe()
    for name in (
        "find_or_create_customer",
        "create_checkout_session",
        "retrieve_checkout_session",
        "retrieve_subscription",
    ):
        monkeypatch.setattr(stripe_gateway, name, getattr(fake, name))
    return fake


@pytest.fixture
def make_subscription(db_session):
    async def _create(user, plan, *, ends_in=timedelta(days=30), method="card", auto_renew=True, status="active"):
        now = utcnow()
        sub = Subscription(
            user_id=user.id,
            plan_id=plan.id,
            status=status,
            payment_method=method,
            auto_renew=auto_renew,
            current_period_start=now,
            current_period_end=now + ends_in,
        )
        db_session.add(sub)
        await db_session.commit()
        await db_session.refresh(sub)
        return sub

    return _create
