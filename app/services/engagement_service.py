from __future__ import annotations

"""
Engagement: favorites, watch history, ratings
=============================================

All three tables are unique per (user, video):

- favorites refuse duplicates (400 "Déjà dans les favoris");
- watch history and ratings upsert, refreshing their timestamp;
- every rating write recomputes `videos.average_rating` (AVG) and
  `videos.total_ratings` (COUNT) from the ratings table.

Upserts are select-then-write so they run unchanged on Postgres and SQLite;
a concurrent insert surfaces as IntegrityError and is retried as an update.
"""

import logging
from typing import Any, Dict, List, Optional, Type
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException
from app.db.models.engagement import Favorite, Rating, WatchHistory
from app.db.models.video import Video
from app.schemas.engagement import FavoriteOut, WatchHistoryOut
from app.services.video_service import get_video_or_404
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50


def _video_columns(video: Video) -> Dict[str, Any]:
    return {
        "title": video.title,
        "thumbnail": video.thumbnail,
        "category": video.category,
        "year": video.year,
        "duration": video.duration,
        "average_rating": video.average_rating,
        "type": video.type,
    }


async def _upsert(db: AsyncSession, model: Type, user_id: UUID, video_id: UUID, values: Dict[str, Any]) -> None:
    """Insert or update the (user, video) row and flush."""
    where = (model.user_id == user_id, model.video_id == video_id)
    row = (await db.execute(select(model).where(*where))).scalar_one_or_none()
    if row is not None:
        for key, value in values.items():
            setattr(row, key, value)
        await db.flush()
        return
    db.add(model(user_id=user_id, video_id=video_id, **values))
    try:
        await db.flush()
    except IntegrityError:
        # lost an insert race; the row exists now
        await db.rollback()
        await db.execute(update(model).where(*where).values(**values))


# ─────────────────────────────────────────────────────────────
# ⭐ Favorites
# ─────────────────────────────────────────────────────────────
async def list_favorites(db: AsyncSession, user_id: UUID) -> List[FavoriteOut]:
    rows = (
        await db.execute(
            select(Favorite, Video)
            .join(Video, Video.id == Favorite.video_id)
            .where(Favorite.user_id == user_id)
            .order_by(Favorite.added_at.desc())
        )
    ).all()
    return [
        FavoriteOut(id=f.id, user_id=f.user_id, video_id=f.video_id, added_at=f.added_at, **_video_columns(v))
        for f, v in rows
    ]


async def add_favorite(db: AsyncSession, user_id: UUID, video_id: UUID) -> None:
    await get_video_or_404(db, video_id)
    exists = (
        await db.execute(select(Favorite.id).where(Favorite.user_id == user_id, Favorite.video_id == video_id))
    ).first()
    if exists:
        raise BadRequestException("Déjà dans les favoris")

    db.add(Favorite(user_id=user_id, video_id=video_id, added_at=utcnow()))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise BadRequestException("Déjà dans les favoris")


async def remove_favorite(db: AsyncSession, user_id: UUID, video_id: UUID) -> None:
    await db.execute(delete(Favorite).where(Favorite.user_id == user_id, Favorite.video_id == video_id))
    await db.commit()


# ─────────────────────────────────────────────────────────────
# 🕘 Watch history
# ─────────────────────────────────────────────────────────────
async def list_history(db: AsyncSession, user_id: UUID, limit: int = HISTORY_LIMIT) -> List[WatchHistoryOut]:
    rows = (
        await db.execute(
            select(WatchHistory, Video)
            .join(Video, Video.id == WatchHistory.video_id)
            .where(WatchHistory.user_id == user_id)
            .order_by(WatchHistory.watched_at.desc())
            .limit(limit)
        )
    ).all()
    return [
        WatchHistoryOut(
            id=h.id,
            user_id=h.user_id,
            video_id=h.video_id,
            progress=h.progress,
            watched_at=h.watched_at,
            **_video_columns(v),
        )
        for h, v in rows
    ]


async def record_progress(db: AsyncSession, user_id: UUID, video_id: UUID, progress: int) -> None:
    await get_video_or_404(db, video_id)
    await _upsert(db, WatchHistory, user_id, video_id, {"progress": progress, "watched_at": utcnow()})
    await db.commit()


# ─────────────────────────────────────────────────────────────
# 🌟 Ratings
# ─────────────────────────────────────────────────────────────
async def get_rating(db: AsyncSession, user_id: UUID, video_id: UUID) -> Optional[int]:
    return (
        await db.execute(select(Rating.rating).where(Rating.user_id == user_id, Rating.video_id == video_id))
    ).scalar_one_or_none()


async def refresh_video_rating(db: AsyncSession, video_id: UUID) -> None:
    avg, count = (
        await db.execute(select(func.avg(Rating.rating), func.count(Rating.id)).where(Rating.video_id == video_id))
    ).one()
    await db.execute(
        update(Video)
        .where(Video.id == video_id)
        .values(average_rating=float(avg or 0), total_ratings=int(count or 0))
    )


async def rate_video(db: AsyncSession, user_id: UUID, video_id: UUID, rating: int) -> None:
    await get_video_or_404(db, video_id)
    await _upsert(db, Rating, user_id, video_id, {"rating": rating, "rated_at": utcnow()})
    await refresh_video_rating(db, video_id)
    await db.commit()
    logger.info("Rating saved user=%s video=%s rating=%s", user_id, video_id, rating)


__all__ = [
    "list_favorites",
    "add_favorite",
    "remove_favorite",
    "list_history",
    "record_progress",
    "get_rating",
    "rate_video",
    "refresh_video_rating",
]
