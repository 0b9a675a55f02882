from urllib.parse import parse_qs, urlparse

import pytest
from httpx import AsyncClient

from app.core.config import settings


def _token_from(link: str) -> str:
    return parse_qs(urlparse(link).query)["token"][0]


@pytest.mark.anyio
async def test_forgot_password_mails_reset_link(async_client: AsyncClient, create_test_user, sent_emails):
    await create_test_user(username="grace", email="grace@example.com")

    resp = await async_client.post("/api/v1/auth/forgot-password", json={"email": "GRACE@example.com"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["message"] == "Email de réinitialisation envoyé"

    mail = sent_emails[-1]
    assert mail["to"] == "grace@example.com"
    assert mail["username"] == "grace"
    assert mail["link"].startswith(f"{settings.frontend_url_str}/reset-password?token=")


@pytest.mark.anyio
async def test_forgot_password_unknown_email(async_client: AsyncClient, sent_emails):
    resp = await async_client.post("/api/v1/auth/forgot-password", json={"email": "nobody@example.com"})
    assert resp.status_code == 400
    assert resp.json()["detail"].startswith("Cet email n'est associé à aucun compte.")
    assert sent_emails == []


@pytest.mark.anyio
async def test_reset_password_full_flow(async_client: AsyncClient, create_test_user, sent_emails):
    await create_test_user(username="heidi", email="heidi@example.com")
    await async_client.post("/api/v1/auth/forgot-password", json={"email": "heidi@example.com"})
    token = _token_from(sent_emails[-1]["link"])

    resp = await async_client.post(
        "/api/v1/auth/reset-password", json={"token": token, "newPassword": "brandnew"}
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["message"] == "Mot de passe réinitialisé avec succès"

    login = await async_client.post("/api/v1/auth/login", json={"username": "heidi", "password": "brandnew"})
    assert login.status_code == 200, login.text

    # single use
    again = await async_client.post(
        "/api/v1/auth/reset-password", json={"token": token, "newPassword": "another1"}
    )
    assert again.status_code == 400
    assert again.json()["detail"] == "Token invalide ou expiré"


@pytest.mark.anyio
async def test_new_reset_request_invalidates_previous_link(async_client: AsyncClient, create_test_user, sent_emails):
    await create_test_user(username="ivan", email="ivan@example.com")
    await async_client.post("/api/v1/auth/forgot-password", json={"email": "ivan@example.com"})
    first = _token_from(sent_emails[-1]["link"])
    await async_client.post("/api/v1/auth/forgot-password", json={"email": "ivan@example.com"})
    second = _token_from(sent_emails[-1]["link"])
    assert first != second

    stale = await async_client.post("/api/v1/auth/reset-password", json={"token": first, "newPassword": "newpass1"})
    assert stale.status_code == 400

    fresh = await async_client.post("/api/v1/auth/reset-password", json={"token": second, "newPassword": "newpass1"})
    assert fresh.status_code == 200


@pytest.mark.anyio
@pytest.mark.parametrize(
    "payload,detail",
    [
        ({"token": "abc"}, "Token et nouveau mot de passe requis"),
        ({"newPassword": "longenough"}, "Token et nouveau mot de passe requis"),
        ({"token": "abc", "newPassword": "123"}, "Le mot de passe doit contenir au moins 6 caractères"),
        ({"token": "not-a-jwt", "newPassword": "longenough"}, "Token invalide ou expiré"),
    ],
)
async def test_reset_password_rejections(async_client: AsyncClient, payload, detail):
    resp = await async_client.post("/api/v1/auth/reset-password", json=payload)
    assert resp.status_code == 400
    assert resp.json()["detail"] == detail


@pytest.mark.anyio
async def test_access_token_is_not_a_reset_token(async_client: AsyncClient, member_with_headers):
    _, headers = member_with_headers
    access = headers["Authorization"].split(" ", 1)[1]

    resp = await async_client.post("/api/v1/auth/reset-password", json={"token": access, "newPassword": "longenough"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Token invalide ou expiré"
