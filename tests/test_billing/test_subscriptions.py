import uuid
from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.db.models.billing import BillingSettings, Payment, Subscriber, Subscription
from app.db.models.notification import Notification
from app.utils.dates import as_utc, utcnow


# ─────────────────────────────────────────────────────────────
# Plans & my subscription
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_plans_active_only_cheapest_first(async_client: AsyncClient, create_plan):
    await create_plan("premium_monthly", name="Premium", price_cents=999)
    await create_plan("basic_monthly", name="Essentiel", price_cents=499)
    await create_plan("old_plan", name="Old", price_cents=1, is_active=False)

    resp = await async_client.get("/api/v1/subscriptions/plans")
    assert resp.status_code == 200
    assert [p["code"] for p in resp.json()] == ["basic_monthly", "premium_monthly"]
    assert resp.json()[0]["priceCents"] == 499


@pytest.mark.anyio
async def test_my_subscription(async_client: AsyncClient, member_with_headers, create_plan, make_subscription):
    user, headers = member_with_headers
    empty = await async_client.get("/api/v1/subscriptions/me", headers=headers)
    assert empty.json() == {"subscribed": False, "subscription": None}

    plan = await create_plan()
    await make_subscription(user, plan)
    resp = await async_client.get("/api/v1/subscriptions/me", headers=headers)
    data = resp.json()
    assert data["subscribed"] is True
    assert data["subscription"]["plan"]["code"] == "premium_monthly"
    assert data["subscription"]["autoRenew"] is True


# ─────────────────────────────────────────────────────────────
# Checkout
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_paysafecard_checkout(async_client: AsyncClient, member_with_headers, create_plan, db_session):
    user, headers = member_with_headers
    plan = await create_plan(price_cents=999)

    resp = await async_client.post(
        "/api/v1/subscriptions/create",
        json={"planId": str(plan.id), "paymentMethod": "paysafecard"},
        headers={**headers, "Origin": "https://app.example.com"},
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["planName"] == "Premium"

    url = urlparse(data["paymentUrl"])
    assert f"{url.scheme}://{url.netloc}{url.path}" == "https://app.example.com/payment/paysafecard"
    query = parse_qs(url.query)
    assert query["amount"] == ["999"]
    assert query["currency"] == ["eur"]
    assert query["plan"] == ["Premium"]

    payment = (
        await db_session.execute(select(Payment).where(Payment.provider_session_id == query["payment_id"][0]))
    ).scalar_one()
    assert payment.status == "pending"
    assert payment.provider == "paysafecard"
    assert payment.is_recurring is True

    prefs = await db_session.get(BillingSettings, user.id)
    assert prefs.preferred_method == "paysafecard"
    assert prefs.paysafecard_auto_renew is False


@pytest.mark.anyio
async def test_card_checkout_uses_stripe(async_client: AsyncClient, member_with_headers, create_plan, fake_stripe, db_session):
    user, headers = member_with_headers
    plan = await create_plan()

    resp = await async_client.post(
        "/api/v1/subscriptions/create",
        json={"planId": str(plan.id), "paymentMethod": "card"},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["paymentUrl"] == "https://checkout.stripe.test/c/cs_test_1"

    params = fake_stripe.checkout_params
    assert params["customer"] == "cus_test"
    assert params["mode"] == "subscription"
    assert params["metadata"] == {"user_id": str(user.id), "plan_id": str(plan.id), "payment_method": "card"}
    assert params["line_items"][0]["price_data"]["recurring"] == {"interval": "month"}
    assert "payment_method_types" not in params

    payment = (await db_session.execute(select(Payment).where(Payment.provider_session_id == "cs_test_1"))).scalar_one()
    assert payment.provider == "stripe"


@pytest.mark.anyio
async def test_paypal_lifetime_checkout_is_one_off(async_client: AsyncClient, member_with_headers, create_plan, fake_stripe):
    _, headers = member_with_headers
    plan = await create_plan("lifetime", name="À vie", interval="lifetime", price_cents=9999)

    resp = await async_client.post(
        "/api/v1/subscriptions/create",
        json={"planId": str(plan.id), "paymentMethod": "paypal"},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    params = fake_stripe.checkout_params
    assert params["mode"] == "payment"
    assert params["payment_method_types"] == ["card", "paypal"]
    assert "recurring" not in params["line_items"][0]["price_data"]


@pytest.mark.anyio
async def test_checkout_without_stripe_config(async_client: AsyncClient, member_with_headers, create_plan):
    _, headers = member_with_headers
    plan = await create_plan()

    resp = await async_client.post(
        "/api/v1/subscriptions/create", json={"planId": str(plan.id), "paymentMethod": "card"}, headers=headers
    )
    assert resp.status_code == 503
    assert resp.json()["code"] == "BILLING_DISABLED"


@pytest.mark.anyio
async def test_checkout_rejections(async_client: AsyncClient, member_with_headers, create_plan, make_subscription):
    user, headers = member_with_headers
    inactive = await create_plan("gone", is_active=False)

    unknown = await async_client.post(
        "/api/v1/subscriptions/create", json={"planId": str(inactive.id), "paymentMethod": "card"}, headers=headers
    )
    assert unknown.status_code == 400
    assert unknown.json()["code"] == "PLAN_NOT_FOUND"

    plan = await create_plan()
    gift = await async_client.post(
        "/api/v1/subscriptions/create", json={"planId": str(plan.id), "paymentMethod": "admin_gift"}, headers=headers
    )
    assert gift.status_code == 400
    assert gift.json()["code"] == "UNSUPPORTED_PAYMENT_METHOD"

    await make_subscription(user, plan)
    again = await async_client.post(
        "/api/v1/subscriptions/create", json={"planId": str(plan.id), "paymentMethod": "card"}, headers=headers
    )
    assert again.status_code == 400
    assert again.json()["code"] == "ALREADY_SUBSCRIBED"


# ─────────────────────────────────────────────────────────────
# Verification
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_verify_stripe_session_activates(
    async_client: AsyncClient, member_with_headers, create_plan, fake_stripe, db_session
):
    user, headers = member_with_headers
    plan = await create_plan()
    await async_client.post(
        "/api/v1/subscriptions/create", json={"planId": str(plan.id), "paymentMethod": "card"}, headers=headers
    )
    fake_stripe.sessions["cs_test_1"] = {
        "id": "cs_test_1",
        "payment_status": "paid",
        "customer": "cus_test",
        "metadata": {"payment_method": "card"},
    }

    resp = await async_client.post("/api/v1/subscriptions/verify-payment", json={"sessionId": "cs_test_1"}, headers=headers)
    assert resp.status_code == 200, resp.text
    assert resp.json() == {"paymentVerified": True, "subscriptionActive": True}

    sub = (await db_session.execute(select(Subscription).execution_options(populate_existing=True).where(Subscription.user_id == user.id))).scalar_one()
    assert sub.status == "active"
    assert sub.auto_renew is True
    delta = as_utc(sub.current_period_end) - as_utc(sub.current_period_start)
    assert timedelta(days=28) <= delta <= timedelta(days=31)

    subscriber = (await db_session.execute(select(Subscriber).execution_options(populate_existing=True).where(Subscriber.user_id == user.id))).scalar_one()
    assert subscriber.subscribed is True
    assert subscriber.stripe_customer_id == "cus_test"
    assert subscriber.subscription_tier == "Premium"

    titles = (
        await db_session.execute(select(Notification.title).where(Notification.user_id == user.id))
    ).scalars().all()
    assert titles == ["✅ Abonnement activé"]

    # repeat verification is idempotent
    again = await async_client.post("/api/v1/subscriptions/verify-payment", json={"sessionId": "cs_test_1"}, headers=headers)
    assert again.json() == {"paymentVerified": True, "subscriptionActive": True}


@pytest.mark.anyio
async def test_verify_unpaid_session(async_client: AsyncClient, member_with_headers, fake_stripe):
    _, headers = member_with_headers
    fake_stripe.sessions["cs_open"] = {"id": "cs_open", "payment_status": "unpaid"}

    resp = await async_client.post("/api/v1/subscriptions/verify-payment", json={"sessionId": "cs_open"}, headers=headers)
    assert resp.json() == {"paymentVerified": False, "subscriptionActive": False}


@pytest.mark.anyio
async def test_verify_paysafecard(async_client: AsyncClient, member_with_headers, create_plan, db_session):
    user, headers = member_with_headers
    plan = await create_plan()
    created = await async_client.post(
        "/api/v1/subscriptions/create", json={"planId": str(plan.id), "paymentMethod": "paysafecard"}, headers=headers
    )
    payment_id = parse_qs(urlparse(created.json()["paymentUrl"]).query)["payment_id"][0]

    pending = await async_client.post("/api/v1/subscriptions/verify-payment", json={"paymentId": payment_id}, headers=headers)
    assert pending.json() == {"paymentVerified": False, "subscriptionActive": False}

    payment = (await db_session.execute(select(Payment).where(Payment.provider_session_id == payment_id))).scalar_one()
    payment.status = "paid"
    await db_session.commit()

    paid = await async_client.post("/api/v1/subscriptions/verify-payment", json={"paymentId": payment_id}, headers=headers)
    assert paid.json() == {"paymentVerified": True, "subscriptionActive": True}

    sub = (await db_session.execute(select(Subscription).execution_options(populate_existing=True).where(Subscription.user_id == user.id))).scalar_one()
    assert sub.payment_method == "paysafecard"
    assert sub.auto_renew is False


@pytest.mark.anyio
async def test_verify_requires_an_id(async_client: AsyncClient, member_with_headers):
    _, headers = member_with_headers
    resp = await async_client.post("/api/v1/subscriptions/verify-payment", json={}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "session_id ou payment_id requis"


# ─────────────────────────────────────────────────────────────
# Admin gifts
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_give_subscription_with_alias(
    async_client: AsyncClient, admin_with_headers, member_with_headers, create_plan, db_session
):
    _, admin_headers = admin_with_headers
    member, _ = member_with_headers
    await create_plan("premium_monthly", name="Premium")

    resp = await async_client.post(
        "/api/v1/admin/subscriptions/give",
        json={"userId": str(member.id), "planCode": "premium", "durationMonths": 3},
        headers=admin_headers,
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["message"] == "Abonnement Premium offert à member"

    sub = (await db_session.execute(select(Subscription).execution_options(populate_existing=True).where(Subscription.user_id == member.id))).scalar_one()
    assert sub.payment_method == "admin_gift"
    assert sub.auto_renew is False
    days = (as_utc(sub.current_period_end) - utcnow()).days
    assert 88 <= days <= 92


@pytest.mark.anyio
async def test_give_lifetime(async_client: AsyncClient, admin_with_headers, member_with_headers, create_plan, db_session):
    _, admin_headers = admin_with_headers
    member, _ = member_with_headers
    await create_plan("lifetime", name="À vie", interval="lifetime")

    resp = await async_client.post(
        "/api/v1/admin/subscriptions/give",
        json={"userId": str(member.id), "planCode": "lifetime"},
        headers=admin_headers,
    )
    assert resp.status_code == 200, resp.text

    sub = (await db_session.execute(select(Subscription).execution_options(populate_existing=True).where(Subscription.user_id == member.id))).scalar_one()
    assert as_utc(sub.current_period_end).year == utcnow().year + 100


@pytest.mark.anyio
async def test_give_unknown_plan_lists_available(
    async_client: AsyncClient, admin_with_headers, member_with_headers, create_plan
):
    _, admin_headers = admin_with_headers
    member, _ = member_with_headers
    await create_plan("basic_monthly", name="Essentiel")
    await create_plan("premium_monthly", name="Premium")

    resp = await async_client.post(
        "/api/v1/admin/subscriptions/give",
        json={"userId": str(member.id), "planCode": "gold"},
        headers=admin_headers,
    )
    assert resp.status_code == 404
    body = resp.json()
    assert body["code"] == "PLAN_NOT_FOUND"
    assert body["detail"] == "Plan 'gold' introuvable ou inactif. Plans disponibles : basic_monthly, premium_monthly"


@pytest.mark.anyio
async def test_give_unknown_user(async_client: AsyncClient, admin_with_headers, create_plan):
    _, admin_headers = admin_with_headers
    await create_plan()
    resp = await async_client.post(
        "/api/v1/admin/subscriptions/give",
        json={"userId": str(uuid.uuid4()), "planCode": "premium_monthly"},
        headers=admin_headers,
    )
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Utilisateur non trouvé"


@pytest.mark.anyio
async def test_give_requires_admin(async_client: AsyncClient, member_with_headers):
    member, headers = member_with_headers
    resp = await async_client.post(
        "/api/v1/admin/subscriptions/give",
        json={"userId": str(member.id), "planCode": "premium"},
        headers=headers,
    )
    assert resp.status_code == 403
