import uuid

import pytest
from httpx import AsyncClient

from app.db.models.engagement import Favorite, Rating, WatchHistory
from tests.fixtures.catalog import BASE_TIME


@pytest.mark.anyio
async def test_list_users_with_counts(async_client: AsyncClient, admin_with_headers, create_test_user, create_video, db_session):
    _, headers = admin_with_headers
    fan = await create_test_user(username="fan")
    v1 = await create_video()
    v2 = await create_video()
    db_session.add_all(
        [
            Favorite(user_id=fan.id, video_id=v1.id, added_at=BASE_TIME),
            Favorite(user_id=fan.id, video_id=v2.id, added_at=BASE_TIME),
            WatchHistory(user_id=fan.id, video_id=v1.id, progress=10, watched_at=BASE_TIME),
        ]
    )
    await db_session.commit()

    resp = await async_client.get("/api/v1/users", headers=headers)
    assert resp.status_code == 200
    by_name = {u["username"]: u for u in resp.json()}
    assert by_name["fan"]["totalFavorites"] == 2
    assert by_name["fan"]["totalWatched"] == 1
    assert by_name["admin"]["totalFavorites"] == 0


@pytest.mark.anyio
async def test_update_user_role(async_client: AsyncClient, admin_with_headers, create_test_user):
    _, headers = admin_with_headers
    user = await create_test_user(username="promote")

    resp = await async_client.put(
        f"/api/v1/users/{user.id}",
        json={"username": "promoted", "email": "Promoted@Example.com", "role": "admin"},
        headers=headers,
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["username"] == "promoted"
    assert data["email"] == "promoted@example.com"
    assert data["role"] == "admin"


@pytest.mark.anyio
async def test_update_user_clash(async_client: AsyncClient, admin_with_headers, create_test_user):
    _, headers = admin_with_headers
    user = await create_test_user()
    await create_test_user(username="taken")

    resp = await async_client.put(
        f"/api/v1/users/{user.id}", json={"username": "taken", "email": "x@example.com", "role": "user"}, headers=headers
    )
    assert resp.status_code == 400


@pytest.mark.anyio
async def test_delete_user(async_client: AsyncClient, admin_with_headers, create_test_user):
    _, headers = admin_with_headers
    user = await create_test_user()

    resp = await async_client.delete(f"/api/v1/users/{user.id}", headers=headers)
    assert resp.status_code == 200

    missing = await async_client.delete(f"/api/v1/users/{uuid.uuid4()}", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Utilisateur non trouvé"


@pytest.mark.anyio
async def test_user_admin_routes_require_admin(async_client: AsyncClient, member_with_headers):
    _, headers = member_with_headers
    assert (await async_client.get("/api/v1/users", headers=headers)).status_code == 403
    assert (await async_client.get("/api/v1/stats", headers=headers)).status_code == 403


@pytest.mark.anyio
async def test_user_stats_hours(async_client: AsyncClient, member_with_headers, create_video, db_session):
    user, headers = member_with_headers
    long_film = await create_video(duration=120)
    unknown_length = await create_video(duration=None)
    rated = await create_video()
    db_session.add_all(
        [
            WatchHistory(user_id=user.id, video_id=long_film.id, progress=50, watched_at=BASE_TIME),
            WatchHistory(user_id=user.id, video_id=unknown_length.id, progress=100, watched_at=BASE_TIME),
            Favorite(user_id=user.id, video_id=rated.id, added_at=BASE_TIME),
            Rating(user_id=user.id, video_id=rated.id, rating=4, rated_at=BASE_TIME),
        ]
    )
    await db_session.commit()

    resp = await async_client.get(f"/api/v1/users/{user.id}/stats", headers=headers)
    assert resp.status_code == 200, resp.text
    # 50% of 120 min + 100% of the 60 min default = 120 min
    assert resp.json() == {"totalWatched": 2, "totalFavorites": 1, "totalRatings": 1, "totalHours": 2}


@pytest.mark.anyio
async def test_user_stats_empty(async_client: AsyncClient, member_with_headers):
    user, headers = member_with_headers
    resp = await async_client.get(f"/api/v1/users/{user.id}/stats", headers=headers)
    assert resp.json() == {"totalWatched": 0, "totalFavorites": 0, "totalRatings": 0, "totalHours": 0}


@pytest.mark.anyio
async def test_user_activity_merges_sources_newest_first(
    async_client: AsyncClient, member_with_headers, create_video, db_session
):
    from datetime import timedelta

    user, headers = member_with_headers
    video = await create_video(title="Mix")
    db_session.add_all(
        [
            WatchHistory(user_id=user.id, video_id=video.id, progress=30, watched_at=BASE_TIME + timedelta(hours=1)),
            Favorite(user_id=user.id, video_id=video.id, added_at=BASE_TIME + timedelta(hours=3)),
            Rating(user_id=user.id, video_id=video.id, rating=5, rated_at=BASE_TIME + timedelta(hours=2)),
        ]
    )
    await db_session.commit()

    resp = await async_client.get(f"/api/v1/users/{user.id}/activity", headers=headers)
    assert resp.status_code == 200, resp.text
    items = resp.json()
    assert [i["type"] for i in items] == ["favorite", "rate", "watch"]
    assert items[1]["userRating"] == 5
    assert all(i["title"] == "Mix" for i in items)


@pytest.mark.anyio
async def test_platform_stats(async_client: AsyncClient, admin_with_headers, create_video):
    _, headers = admin_with_headers
    await create_video(category="Action", views=10, average_rating=4.0)
    await create_video(category="Action", views=5, average_rating=2.0, type="series")
    await create_video(category="Drame", views=1, average_rating=3.0)

    resp = await async_client.get("/api/v1/stats", headers=headers)
    assert resp.status_code == 200, resp.text
    data = resp.json()
    assert data["totalVideos"] == 3
    assert data["totalMovies"] == 2
    assert data["totalSeries"] == 1
    assert data["totalViews"] == 16
    assert data["averageRating"] == "3.0"
    assert data["topCategories"][0] == {"category": "Action", "count": 2, "totalViews": 15}
