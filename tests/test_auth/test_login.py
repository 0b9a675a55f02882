import pytest
from httpx import AsyncClient

from tests.fixtures.users import DEFAULT_PASSWORD


def ip_header(octet: int) -> dict:
    # each test uses its own synthetic client IP
    return {"X-Forwarded-For": f"10.0.0.{octet}"}


# ─────────────────────────────────────────────────────────────
# /auth/login
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_login_success_returns_token_and_user(async_client: AsyncClient, create_test_user):
    user = await create_test_user(username="alice", email="alice@example.com")

    resp = await async_client.post(
        "/api/v1/auth/login",
        json={"username": "alice", "password": DEFAULT_PASSWORD},
        headers=ip_header(10),
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert isinstance(data["token"], str) and data["token"]
    assert data["user"] == {"id": str(user.id), "username": "alice", "email": "alice@example.com", "role": "user"}
    assert "no-store" in resp.headers.get("cache-control", "")


@pytest.mark.anyio
async def test_login_unknown_user(async_client: AsyncClient):
    resp = await async_client.post(
        "/api/v1/auth/login",
        json={"username": "ghost", "password": "whatever"},
        headers=ip_header(11),
    )
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Utilisateur non trouvé"


@pytest.mark.anyio
async def test_login_wrong_password(async_client: AsyncClient, create_test_user):
    await create_test_user(username="bob")

    resp = await async_client.post(
        "/api/v1/auth/login",
        json={"username": "bob", "password": "nope"},
        headers=ip_header(12),
    )
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Mot de passe incorrect"
    assert resp.headers["content-type"].startswith("application/problem+json")


@pytest.mark.anyio
async def test_login_blocks_account_after_five_failures(async_client: AsyncClient, create_test_user, redis_client):
    await create_test_user(username="carol")

    for i in range(5):
        resp = await async_client.post(
            "/api/v1/auth/login",
            json={"username": "carol", "password": "bad"},
            headers=ip_header(20 + i),
        )
        assert resp.status_code == 401

    # even the right password is refused while blocked, from a fresh IP
    resp = await async_client.post(
        "/api/v1/auth/login",
        json={"username": "carol", "password": DEFAULT_PASSWORD},
        headers=ip_header(30),
    )
    assert resp.status_code == 429
    body = resp.json()
    assert body["code"] == "TOO_MANY_ATTEMPTS"
    assert body["details"]["retryAfterMinutes"] == 5
    assert int(resp.headers["retry-after"]) > 0
    assert await redis_client.ttl("bf:user:carol") > 0


@pytest.mark.anyio
async def test_login_block_expires(async_client: AsyncClient, create_test_user, redis_client):
    await create_test_user(username="dave")
    for _ in range(5):
        await async_client.post(
            "/api/v1/auth/login",
            json={"username": "dave", "password": "bad"},
            headers=ip_header(40),
        )

    redis_client.advance(5 * 60 + 1)

    resp = await async_client.post(
        "/api/v1/auth/login",
        json={"username": "dave", "password": DEFAULT_PASSWORD},
        headers=ip_header(41),
    )
    assert resp.status_code == 200, resp.text


@pytest.mark.anyio
async def test_login_blocks_ip_after_ten_failures(async_client: AsyncClient, create_test_user):
    await create_test_user(username="erin")

    for i in range(10):
        await async_client.post(
            "/api/v1/auth/login",
            json={"username": f"nobody{i}", "password": "bad"},
            headers=ip_header(50),
        )

    resp = await async_client.post(
        "/api/v1/auth/login",
        json={"username": "erin", "password": DEFAULT_PASSWORD},
        headers=ip_header(50),
    )
    assert resp.status_code == 429
    assert resp.json()["details"]["retryAfterMinutes"] == 15


@pytest.mark.anyio
async def test_successful_login_resets_account_counter(async_client: AsyncClient, create_test_user, redis_client):
    await create_test_user(username="frank")
    for _ in range(3):
        await async_client.post(
            "/api/v1/auth/login",
            json={"username": "frank", "password": "bad"},
            headers=ip_header(60),
        )

    resp = await async_client.post(
        "/api/v1/auth/login",
        json={"username": "frank", "password": DEFAULT_PASSWORD},
        headers=ip_header(60),
    )
    assert resp.status_code == 200
    assert await redis_client.get("bf:user:frank") is None
    assert await redis_client.get("bf:ip:10.0.0.60") == "2"


# ─────────────────────────────────────────────────────────────
# /auth/register
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_register_creates_user_and_signs_in(async_client: AsyncClient):
    resp = await async_client.post(
        "/api/v1/auth/register",
        json={"username": "newbie", "email": "Newbie@Example.com", "password": "secret1"},
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["user"]["username"] == "newbie"
    assert data["user"]["email"] == "newbie@example.com"
    assert data["user"]["role"] == "user"

    verify = await async_client.get(
        "/api/v1/auth/verify", headers={"Authorization": f"Bearer {data['token']}"}
    )
    assert verify.status_code == 200
    assert verify.json()["user"]["username"] == "newbie"


@pytest.mark.anyio
async def test_register_duplicate_is_rejected(async_client: AsyncClient, create_test_user):
    await create_test_user(username="taken", email="taken@example.com")

    resp = await async_client.post(
        "/api/v1/auth/register",
        json={"username": "other", "email": "taken@example.com", "password": "secret1"},
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Utilisateur ou email déjà existant"


@pytest.mark.anyio
async def test_register_short_password_is_a_validation_error(async_client: AsyncClient):
    resp = await async_client.post(
        "/api/v1/auth/register",
        json={"username": "shorty", "email": "shorty@example.com", "password": "123"},
    )
    assert resp.status_code == 422


# ─────────────────────────────────────────────────────────────
# /auth/verify + /auth/logout
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_verify_requires_token(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/auth/verify")
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token d'accès requis"


@pytest.mark.anyio
async def test_verify_rejects_garbage_token(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/auth/verify", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
    assert resp.headers.get("www-authenticate") == "Bearer"


@pytest.mark.anyio
async def test_logout_revokes_token(async_client: AsyncClient, member_with_headers):
    _, headers = member_with_headers

    resp = await async_client.post("/api/v1/auth/logout", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"success": True, "message": "Déconnexion réussie"}

    again = await async_client.get("/api/v1/auth/verify", headers=headers)
    assert again.status_code == 401
    assert again.json()["code"] == "TOKEN_REVOKED"
