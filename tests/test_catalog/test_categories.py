import uuid

import pytest
from httpx import AsyncClient


@pytest.mark.anyio
async def test_create_and_list_with_video_counts(async_client: AsyncClient, admin_with_headers, create_video):
    _, headers = admin_with_headers
    await create_video(category="Action")
    await create_video(category="Action")

    for name in ("Comédie", "Action"):
        resp = await async_client.post("/api/v1/categories", json={"name": name, "color": "#f00"}, headers=headers)
        assert resp.status_code == 201, resp.text

    resp = await async_client.get("/api/v1/categories")
    assert resp.status_code == 200
    counts = {c["name"]: c["videoCount"] for c in resp.json()}
    assert counts == {"Action": 2, "Comédie": 0}
    assert [c["name"] for c in resp.json()] == ["Action", "Comédie"]


@pytest.mark.anyio
async def test_duplicate_name_conflicts(async_client: AsyncClient, admin_with_headers):
    _, headers = admin_with_headers
    await async_client.post("/api/v1/categories", json={"name": "Drame"}, headers=headers)

    resp = await async_client.post("/api/v1/categories", json={"name": "Drame"}, headers=headers)
    assert resp.status_code == 409
    body = resp.json()
    assert body["code"] == "CATEGORY_EXISTS"
    assert body["detail"] == "Une catégorie avec ce nom existe déjà"


@pytest.mark.anyio
async def test_update_category(async_client: AsyncClient, admin_with_headers):
    _, headers = admin_with_headers
    a = (await async_client.post("/api/v1/categories", json={"name": "Horreur"}, headers=headers)).json()
    await async_client.post("/api/v1/categories", json={"name": "Thriller"}, headers=headers)

    ok = await async_client.put(
        f"/api/v1/categories/{a['id']}", json={"name": "Épouvante", "description": "Frissons"}, headers=headers
    )
    assert ok.status_code == 200, ok.text
    assert ok.json()["name"] == "Épouvante"
    assert ok.json()["description"] == "Frissons"

    clash = await async_client.put(f"/api/v1/categories/{a['id']}", json={"name": "Thriller"}, headers=headers)
    assert clash.status_code == 409


@pytest.mark.anyio
async def test_delete_category(async_client: AsyncClient, admin_with_headers):
    _, headers = admin_with_headers
    created = (await async_client.post("/api/v1/categories", json={"name": "Docu"}, headers=headers)).json()

    resp = await async_client.delete(f"/api/v1/categories/{created['id']}", headers=headers)
    assert resp.status_code == 200

    missing = await async_client.delete(f"/api/v1/categories/{uuid.uuid4()}", headers=headers)
    assert missing.status_code == 404


@pytest.mark.anyio
async def test_category_writes_require_admin(async_client: AsyncClient, member_with_headers):
    _, headers = member_with_headers
    resp = await async_client.post("/api/v1/categories", json={"name": "Nope"}, headers=headers)
    assert resp.status_code == 403
