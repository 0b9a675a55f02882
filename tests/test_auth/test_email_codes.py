import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.db.models.auth_tokens import EmailVerificationCode


@pytest.mark.anyio
async def test_send_code_mails_six_digit_code(async_client: AsyncClient, sent_emails):
    resp = await async_client.post("/api/v1/auth/send-code", json={"email": "Fresh@Example.com"})
    assert resp.status_code == 200, resp.text
    assert resp.json()["message"] == "Code de vérification envoyé par email"

    assert len(sent_emails) == 1
    mail = sent_emails[0]
    assert mail["to"] == "fresh@example.com"
    assert mail["code"].isdigit() and len(mail["code"]) == 6


@pytest.mark.anyio
async def test_send_code_reuses_live_code(async_client: AsyncClient, sent_emails, db_session):
    await async_client.post("/api/v1/auth/send-code", json={"email": "again@example.com"})
    await async_client.post("/api/v1/auth/send-code", json={"email": "again@example.com"})

    assert sent_emails[0]["code"] == sent_emails[1]["code"]
    rows = (
        await db_session.execute(
            select(EmailVerificationCode).where(EmailVerificationCode.email == "again@example.com")
        )
    ).scalars().all()
    assert len(rows) == 1


@pytest.mark.anyio
async def test_send_code_requires_email(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/auth/send-code", json={})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Email requis"


@pytest.mark.anyio
async def test_send_code_refuses_registered_email(async_client: AsyncClient, create_test_user, sent_emails):
    await create_test_user(email="member@example.com")

    resp = await async_client.post("/api/v1/auth/send-code", json={"email": "member@example.com"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cet email est déjà associé à un compte existant"
    assert sent_emails == []


@pytest.mark.anyio
async def test_verify_code_accepts_once(async_client: AsyncClient, sent_emails):
    await async_client.post("/api/v1/auth/send-code", json={"email": "v@example.com"})
    code = sent_emails[0]["code"]

    ok = await async_client.post("/api/v1/auth/verify-code", json={"email": "v@example.com", "code": code})
    assert ok.status_code == 200, ok.text
    assert ok.json()["message"] == "Code vérifié avec succès"

    reused = await async_client.post("/api/v1/auth/verify-code", json={"email": "v@example.com", "code": code})
    assert reused.status_code == 400
    assert reused.json()["detail"] == "Code invalide ou expiré"


@pytest.mark.anyio
async def test_verify_code_rejects_wrong_code(async_client: AsyncClient, sent_emails):
    await async_client.post("/api/v1/auth/send-code", json={"email": "w@example.com"})
    wrong = "000000" if sent_emails[0]["code"] != "000000" else "111111"

    resp = await async_client.post("/api/v1/auth/verify-code", json={"email": "w@example.com", "code": wrong})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Code invalide ou expiré"


@pytest.mark.anyio
async def test_verify_code_requires_both_fields(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/auth/verify-code", json={"email": "x@example.com"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Email et code requis"
