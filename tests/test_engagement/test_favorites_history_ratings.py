import uuid

import pytest
from httpx import AsyncClient


# ─────────────────────────────────────────────────────────────
# Favorites
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_add_list_remove_favorite(async_client: AsyncClient, member_with_headers, create_video):
    user, headers = member_with_headers
    video = await create_video(title="Fav", category="Drame", duration=90)

    added = await async_client.post(
        "/api/v1/favorites", json={"userId": str(user.id), "videoId": str(video.id)}, headers=headers
    )
    assert added.status_code == 201, added.text

    listed = await async_client.get(f"/api/v1/favorites/{user.id}", headers=headers)
    assert listed.status_code == 200
    rows = listed.json()
    assert len(rows) == 1
    assert rows[0]["videoId"] == str(video.id)
    assert rows[0]["title"] == "Fav"
    assert rows[0]["duration"] == 90

    removed = await async_client.delete(f"/api/v1/favorites/{user.id}/{video.id}", headers=headers)
    assert removed.status_code == 200
    assert (await async_client.get(f"/api/v1/favorites/{user.id}", headers=headers)).json() == []


@pytest.mark.anyio
async def test_duplicate_favorite_rejected(async_client: AsyncClient, member_with_headers, create_video):
    user, headers = member_with_headers
    video = await create_video()
    body = {"userId": str(user.id), "videoId": str(video.id)}

    await async_client.post("/api/v1/favorites", json=body, headers=headers)
    resp = await async_client.post("/api/v1/favorites", json=body, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Déjà dans les favoris"


@pytest.mark.anyio
async def test_favorite_unknown_video(async_client: AsyncClient, member_with_headers):
    user, headers = member_with_headers
    resp = await async_client.post(
        "/api/v1/favorites", json={"userId": str(user.id), "videoId": str(uuid.uuid4())}, headers=headers
    )
    assert resp.status_code == 404


@pytest.mark.anyio
async def test_favorites_of_another_user_forbidden(async_client: AsyncClient, member_with_headers, create_test_user):
    _, headers = member_with_headers
    other = await create_test_user()

    resp = await async_client.get(f"/api/v1/favorites/{other.id}", headers=headers)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Accès non autorisé"


@pytest.mark.anyio
async def test_admin_can_read_any_favorites(async_client: AsyncClient, admin_with_headers, create_test_user):
    _, headers = admin_with_headers
    other = await create_test_user()

    resp = await async_client.get(f"/api/v1/favorites/{other.id}", headers=headers)
    assert resp.status_code == 200


# ─────────────────────────────────────────────────────────────
# Watch history
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_watch_history_upserts_progress(async_client: AsyncClient, member_with_headers, create_video):
    user, headers = member_with_headers
    video = await create_video()

    for progress in (10, 75):
        resp = await async_client.post(
            "/api/v1/watch-history",
            json={"userId": str(user.id), "videoId": str(video.id), "progress": progress},
            headers=headers,
        )
        assert resp.status_code == 200, resp.text

    rows = (await async_client.get(f"/api/v1/watch-history/{user.id}", headers=headers)).json()
    assert len(rows) == 1
    assert rows[0]["progress"] == 75


@pytest.mark.anyio
async def test_watch_history_rejects_out_of_range_progress(async_client: AsyncClient, member_with_headers, create_video):
    user, headers = member_with_headers
    video = await create_video()

    resp = await async_client.post(
        "/api/v1/watch-history",
        json={"userId": str(user.id), "videoId": str(video.id), "progress": 150},
        headers=headers,
    )
    assert resp.status_code == 422


# ─────────────────────────────────────────────────────────────
# Ratings
# ─────────────────────────────────────────────────────────────
@pytest.mark.anyio
async def test_ratings_recompute_video_aggregate(
    async_client: AsyncClient, user_with_headers, create_video, db_session
):
    video = await create_video()
    alice, alice_headers = await user_with_headers()
    bob, bob_headers = await user_with_headers()

    await async_client.post(
        "/api/v1/ratings", json={"userId": str(alice.id), "videoId": str(video.id), "rating": 5}, headers=alice_headers
    )
    await async_client.post(
        "/api/v1/ratings", json={"userId": str(bob.id), "videoId": str(video.id), "rating": 2}, headers=bob_headers
    )
    # a re-rate replaces the previous value
    resp = await async_client.post(
        "/api/v1/ratings", json={"userId": str(bob.id), "videoId": str(video.id), "rating": 4}, headers=bob_headers
    )
    assert resp.status_code == 200, resp.text

    await db_session.refresh(video)
    assert video.total_ratings == 2
    assert video.average_rating == pytest.approx(4.5)

    mine = await async_client.get(f"/api/v1/ratings/{bob.id}/{video.id}", headers=bob_headers)
    assert mine.json() == {"rating": 4}


@pytest.mark.anyio
async def test_rating_absent_is_null(async_client: AsyncClient, member_with_headers, create_video):
    user, headers = member_with_headers
    video = await create_video()
    resp = await async_client.get(f"/api/v1/ratings/{user.id}/{video.id}", headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"rating": None}


@pytest.mark.anyio
@pytest.mark.parametrize("rating", [0, 6])
async def test_rating_bounds(async_client: AsyncClient, member_with_headers, create_video, rating):
    user, headers = member_with_headers
    video = await create_video()
    resp = await async_client.post(
        "/api/v1/ratings", json={"userId": str(user.id), "videoId": str(video.id), "rating": rating}, headers=headers
    )
    assert resp.status_code == 422
