from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.billing import SubscriptionPlan
from app.db.models.episode import Episode
from app.db.models.video import Video

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def create_video(db_session: AsyncSession) -> Callable[..., Awaitable[Video]]:
    """
    Insert a video. `minutes` offsets `created_at` from a fixed base so list
    ordering is deterministic.
    """
    counter = {"n": 0}

    async def _create(minutes: int | None = None, **fields) -> Video:
        counter["n"] += 1
        offset = minutes if minutes is not None else counter["n"]
        values = {
            "title": f"Video {counter['n']}",
            "video_url": "https://media.example.com/video.mp4",
            "type": "movie",
            "created_at": BASE_TIME + timedelta(minutes=offset),
        }
        values.update(fields)
        video = Video(**values)
        db_session.add(video)
        await db_session.commit()
        await db_session.refresh(video)
        return video

    return _create


@pytest.fixture
def create_episode(db_session: AsyncSession) -> Callable[..., Awaitable[Episode]]:
    async def _create(series: Video, episode_number: int, season_number: int = 1, **fields) -> Episode:
        episode = Episode(
            series_id=series.id,
            season_number=season_number,
            episode_number=episode_number,
            title=fields.pop("title", f"S{season_number}E{episode_number}"),
            video_url=fields.pop("video_url", "https://media.example.com/ep.mp4"),
            **fields,
        )
        db_session.add(episode)
        await db_session.commit()
        await db_session.refresh(episode)
        return episode

    return _create


@pytest.fixture
def create_plan(db_session: AsyncSession) -> Callable[..., Awaitable[SubscriptionPlan]]:
    async def _create(
        code: str = "premium_monthly",
        *,
        name: str = "Premium",
        price_cents: int = 999,
        interval: str = "month",
        is_active: bool = True,
    ) -> SubscriptionPlan:
        plan = SubscriptionPlan(
            code=code,
            name=name,
            price_cents=price_cents,
            currency="eur",
            interval=interval,
            is_active=is_active,
        )
        db_session.add(plan)
        await db_session.commit()
        await db_session.refresh(plan)
        return plan

    return _create
