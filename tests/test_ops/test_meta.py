import uuid

import pytest
from httpx import AsyncClient

import app.main as main_module
from app.core.config import settings


async def _ok() -> bool:
    return True


async def _down() -> bool:
    return False


@pytest.mark.anyio
async def test_healthz(async_client: AsyncClient):
    resp = await async_client.get("/healthz")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True}


@pytest.mark.anyio
async def test_readyz_when_dependencies_answer(async_client: AsyncClient, monkeypatch):
    monkeypatch.setattr(main_module, "db_healthcheck", _ok)

    resp = await async_client.get("/readyz")
    assert resp.status_code == 200
    assert resp.json() == {"ready": True, "checks": {"db": True, "redis": True}}


@pytest.mark.anyio
async def test_readyz_reports_failed_dependency(async_client: AsyncClient, monkeypatch):
    monkeypatch.setattr(main_module, "db_healthcheck", _down)

    resp = await async_client.get("/readyz")
    assert resp.status_code == 503
    assert resp.json()["checks"] == {"db": False, "redis": True}


@pytest.mark.anyio
async def test_root_describes_api(async_client: AsyncClient):
    body = (await async_client.get("/")).json()
    assert body["name"] == "Yunoa API"
    assert body["docs"] == "/docs"


@pytest.mark.anyio
async def test_request_id_is_echoed(async_client: AsyncClient):
    rid = str(uuid.uuid4())
    resp = await async_client.get("/healthz", headers={"X-Request-ID": rid})
    assert resp.headers["X-Request-ID"] == rid


@pytest.mark.anyio
async def test_non_uuid_request_id_is_replaced(async_client: AsyncClient):
    resp = await async_client.get("/healthz", headers={"X-Request-ID": "not-a-uuid"})
    assert uuid.UUID(resp.headers["X-Request-ID"]).version == 4


@pytest.mark.anyio
async def test_unknown_route_is_problem_json(async_client: AsyncClient):
    resp = await async_client.get("/api/v1/nope")
    assert resp.status_code == 404
    assert resp.headers["content-type"].startswith("application/problem+json")
    body = resp.json()
    assert body["status"] == 404
    assert body["instance"] == "/api/v1/nope"
    assert body["request_id"] == resp.headers["X-Request-ID"]


@pytest.mark.anyio
async def test_validation_error_is_localized(async_client: AsyncClient):
    resp = await async_client.post("/api/v1/auth/login", json={"email": "x"})
    assert resp.status_code == 422
    body = resp.json()
    assert body["detail"] == "Données invalides"
    assert body["errors"]


@pytest.mark.anyio
async def test_server_header_is_stripped(async_client: AsyncClient):
    resp = await async_client.get("/healthz")
    assert "server" not in resp.headers


@pytest.mark.anyio
async def test_security_headers_on_api_responses(async_client: AsyncClient):
    resp = await async_client.get("/healthz")
    assert resp.headers["X-Content-Type-Options"] == "nosniff"
    assert resp.headers["X-Frame-Options"] == "DENY"
    assert resp.headers["Cross-Origin-Resource-Policy"] == "same-origin"
    assert "Content-Security-Policy" in resp.headers


@pytest.mark.anyio
async def test_authenticated_responses_are_not_cached(async_client: AsyncClient, member_with_headers):
    _, headers = member_with_headers
    resp = await async_client.get("/api/v1/auth/verify", headers=headers)
    assert resp.status_code == 200
    assert resp.headers["Cache-Control"] == "no-store"


@pytest.fixture
def failing_route(app, monkeypatch):
    """A route that blows up, plus a record of what the handler logged."""
    from app.core import exception_handlers

    logged = []
    monkeypatch.setattr(exception_handlers.logger, "exception", lambda msg, *args: logged.append(msg % args))

    @app.get("/api/v1/_explode")
    async def _explode():
        raise RuntimeError("secret internals")

    return logged


@pytest.mark.anyio
@pytest.mark.parametrize("locale,message", [("fr", "Erreur serveur interne"), ("en", "Internal server error")])
async def test_unhandled_error_is_generic_500(lenient_client: AsyncClient, failing_route, monkeypatch, locale, message):
    monkeypatch.setattr(settings, "ERROR_LOCALE", locale)

    resp = await lenient_client.get("/api/v1/_explode")
    assert resp.status_code == 500
    assert resp.headers["content-type"].startswith("application/problem+json")
    body = resp.json()
    assert body["detail"] == message
    assert body["status"] == 500
    assert "secret internals" not in resp.text
    assert failing_route == ["Unhandled error on GET /api/v1/_explode"]
