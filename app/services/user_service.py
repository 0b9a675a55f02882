from __future__ import annotations

"""
Users: admin management, per-user stats and activity feed, platform stats.
"""

import logging
import math
from typing import List
from uuid import UUID

from sqlalchemy import case, func, literal, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException, NotFoundException
from app.db.models.category import Category
from app.db.models.engagement import Favorite, Rating, WatchHistory
from app.db.models.user import User
from app.db.models.video import Video
from app.schemas.enums import ActivityType, VideoType
from app.schemas.user import ActivityItem, PlatformStats, TopCategory, UserAdminOut, UserStats, UserUpdate
from app.utils.dates import days_ago

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 60
TOP_CATEGORIES = 5
RECENT_USER_DAYS = 7


# ─────────────────────────────────────────────────────────────
# 👥 Admin: users
# ─────────────────────────────────────────────────────────────
async def list_users(db: AsyncSession) -> List[UserAdminOut]:
    stmt = (
        select(
            User,
            func.count(func.distinct(Favorite.id)),
            func.count(func.distinct(WatchHistory.id)),
        )
        .outerjoin(Favorite, Favorite.user_id == User.id)
        .outerjoin(WatchHistory, WatchHistory.user_id == User.id)
        .group_by(User.id)
        .order_by(User.created_at.desc())
    )
    out: List[UserAdminOut] = []
    for user, favorites, watched in (await db.execute(stmt)).all():
        item = UserAdminOut.model_validate(user)
        item.total_favorites = int(favorites or 0)
        item.total_watched = int(watched or 0)
        out.append(item)
    return out


async def _get_user_or_404(db: AsyncSession, user_id: UUID) -> User:
    user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
    if user is None:
        raise NotFoundException("Utilisateur non trouvé")
    return user


async def update_user(db: AsyncSession, user_id: UUID, payload: UserUpdate) -> UserAdminOut:
    user = await _get_user_or_404(db, user_id)
    username = payload.username.strip()
    email = payload.email.strip().lower()

    clash = (
        await db.execute(
            select(User.id).where(User.id != user_id, or_(User.username == username, User.email == email))
        )
    ).first()
    if clash:
        raise BadRequestException("Utilisateur ou email déjà existant")

    user.username = username
    user.email = email
    user.role = payload.role.value
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise BadRequestException("Utilisateur ou email déjà existant")
    await db.refresh(user)
    logger.info("User updated id=%s role=%s", user_id, user.role)
    return UserAdminOut.model_validate(user)


async def delete_user(db: AsyncSession, user_id: UUID) -> None:
    user = await _get_user_or_404(db, user_id)
    await db.delete(user)
    await db.commit()
    logger.info("User deleted id=%s", user_id)


# ─────────────────────────────────────────────────────────────
# 📊 Per-user stats & activity
# ─────────────────────────────────────────────────────────────
async def user_stats(db: AsyncSession, user_id: UUID) -> UserStats:
    watched = (
        await db.execute(select(func.count(func.distinct(WatchHistory.video_id))).where(WatchHistory.user_id == user_id))
    ).scalar_one()
    favorites = (await db.execute(select(func.count(Favorite.id)).where(Favorite.user_id == user_id))).scalar_one()
    ratings = (await db.execute(select(func.count(Rating.id)).where(Rating.user_id == user_id))).scalar_one()

    minutes = (
        await db.execute(
            select(
                func.sum(
                    WatchHistory.progress * 1.0 / 100
                    * func.coalesce(Video.duration, DEFAULT_DURATION_MINUTES)
                )
            )
            .select_from(WatchHistory)
            .outerjoin(Video, Video.id == WatchHistory.video_id)
            .where(WatchHistory.user_id == user_id, WatchHistory.progress > 0)
        )
    ).scalar_one()

    return UserStats(
        total_watched=int(watched or 0),
        total_favorites=int(favorites or 0),
        total_ratings=int(ratings or 0),
        total_hours=math.floor(float(minutes or 0) / 60),
    )


def _activity_query(kind: ActivityType, model, stamp, user_id: UUID, per_source: int):
    columns = [
        literal(kind.value).label("type"),
        stamp.label("date"),
        Video.id.label("video_id"),
        Video.title,
        Video.thumbnail,
        Video.category,
        Video.average_rating,
        Video.type.label("video_type"),
    ]
    if kind is ActivityType.RATE:
        columns.append(Rating.rating.label("user_rating"))
    return (
        select(*columns)
        .select_from(model)
        .join(Video, Video.id == model.video_id)
        .where(model.user_id == user_id)
        .order_by(stamp.desc())
        .limit(per_source)
    )


async def user_activity(db: AsyncSession, user_id: UUID, limit: int = 10) -> List[ActivityItem]:
    """Watch / favorite / rate events, ceil(limit/3) per source, newest first."""
    per_source = max(1, math.ceil(limit / 3))
    sources = (
        (ActivityType.WATCH, WatchHistory, WatchHistory.watched_at),
        (ActivityType.FAVORITE, Favorite, Favorite.added_at),
        (ActivityType.RATE, Rating, Rating.rated_at),
    )
    items: List[ActivityItem] = []
    for kind, model, stamp in sources:
        rows = (await db.execute(_activity_query(kind, model, stamp, user_id, per_source))).mappings().all()
        items.extend(ActivityItem.model_validate(dict(row)) for row in rows)

    items.sort(key=lambda item: item.date, reverse=True)
    return items[:limit]


# ─────────────────────────────────────────────────────────────
# 📈 Platform stats (admin)
# ─────────────────────────────────────────────────────────────
async def platform_stats(db: AsyncSession) -> PlatformStats:
    videos = (
        await db.execute(
            select(
                func.count(Video.id),
                func.sum(Video.views),
                func.avg(Video.average_rating),
                func.count(case((Video.type == VideoType.MOVIE.value, 1))),
                func.count(case((Video.type == VideoType.SERIES.value, 1))),
            )
        )
    ).one()
    total_videos, total_views, avg_rating, movies, series = videos

    total_users = (await db.execute(select(func.count(User.id)))).scalar_one()
    total_categories = (await db.execute(select(func.count(Category.id)))).scalar_one()
    recent_users = (
        await db.execute(select(func.count(User.id)).where(User.created_at >= days_ago(RECENT_USER_DAYS)))
    ).scalar_one()

    count_col = func.count(Video.id).label("count")
    top = (
        await db.execute(
            select(Video.category, count_col, func.sum(Video.views).label("total_views"))
            .where(Video.category.is_not(None))
            .group_by(Video.category)
            .order_by(count_col.desc())
            .limit(TOP_CATEGORIES)
        )
    ).all()

    return PlatformStats(
        total_videos=int(total_videos or 0),
        total_movies=int(movies or 0),
        total_series=int(series or 0),
        total_users=int(total_users or 0),
        total_categories=int(total_categories or 0),
        total_views=int(total_views or 0),
        average_rating=f"{float(avg_rating or 0):.1f}",
        recent_users=int(recent_users or 0),
        top_categories=[
            TopCategory(category=category, count=int(count), total_views=int(views or 0))
            for category, count, views in top
        ],
    )


__all__ = [
    "list_users",
    "update_user",
    "delete_user",
    "user_stats",
    "user_activity",
    "platform_stats",
]
