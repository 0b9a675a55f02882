from __future__ import annotations

"""
Video catalog service
=====================

Videos, episodes, view counters, top-rated and search.

Reads join `users.username` as `createdByUsername`; detail reads attach
subtitles (default first, then language) and, for series, episodes in
season/episode order. Admin writes fall back to `type=movie` and 1 season /
1 episode when the body omits them.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException, ConflictException, NotFoundException
from app.db.models.episode import Episode
from app.db.models.subtitle import Subtitle
from app.db.models.user import User
from app.db.models.video import Video
from app.schemas.catalog import (
    EpisodeCreate,
    EpisodeOut,
    EpisodeUpdate,
    SubtitleOut,
    VideoDetail,
    VideoOut,
    VideoWrite,
)
from app.schemas.enums import VideoType

logger = logging.getLogger(__name__)

VIDEO_NOT_FOUND = "Vidéo non trouvée"
EPISODE_NOT_FOUND = "Épisode non trouvé"


def _with_creator():
    return select(Video, User.username).outerjoin(User, User.id == Video.created_by)


def _video_out(video: Video, username: Optional[str]) -> VideoOut:
    out = VideoOut.model_validate(video)
    out.created_by_username = username
    return out


def like_pattern(term: str) -> str:
    """`%term%` with LIKE wildcards in `term` escaped (escape char `\\`)."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


async def get_video_or_404(db: AsyncSession, video_id: UUID) -> Video:
    video = (await db.execute(select(Video).where(Video.id == video_id))).scalar_one_or_none()
    if video is None:
        raise NotFoundException(VIDEO_NOT_FOUND)
    return video


# ─────────────────────────────────────────────────────────────
# 🎬 Videos
# ─────────────────────────────────────────────────────────────
async def list_videos(db: AsyncSession) -> List[VideoOut]:
    rows = (await db.execute(_with_creator().order_by(Video.created_at.desc()))).all()
    return [_video_out(v, username) for v, username in rows]


async def get_video_detail(db: AsyncSession, video_id: UUID) -> VideoDetail:
    row = (await db.execute(_with_creator().where(Video.id == video_id))).first()
    if row is None:
        raise NotFoundException(VIDEO_NOT_FOUND)
    video, username = row

    subtitles = (
        await db.execute(
            select(Subtitle)
            .where(Subtitle.video_id == video_id)
            .order_by(Subtitle.is_default.desc(), Subtitle.language.asc())
        )
    ).scalars().all()

    episodes: list = []
    if video.type == VideoType.SERIES.value:
        episodes = (
            await db.execute(
                select(Episode)
                .where(Episode.series_id == video_id)
                .order_by(Episode.season_number.asc(), Episode.episode_number.asc())
            )
        ).scalars().all()

    detail = VideoDetail.model_validate(video)
    detail.created_by_username = username
    detail.subtitles = [SubtitleOut.model_validate(s) for s in subtitles]
    detail.episodes = [EpisodeOut.model_validate(e) for e in episodes]
    return detail


def _apply_video_fields(video: Video, payload: VideoWrite) -> None:
    video.title = payload.title
    video.description = payload.description
    video.thumbnail = payload.thumbnail
    video.video_url = payload.video_url
    video.duration = payload.duration
    video.category = payload.category
    video.language = payload.language
    video.year = payload.year
    video.type = (payload.type or VideoType.MOVIE).value
    video.total_seasons = payload.total_seasons or 1
    video.total_episodes = payload.total_episodes or 1


async def create_video(db: AsyncSession, payload: VideoWrite, *, creator: User) -> VideoOut:
    video = Video(created_by=creator.id)
    _apply_video_fields(video, payload)
    db.add(video)
    await db.commit()
    await db.refresh(video)
    logger.info("Video created id=%s by=%s", video.id, creator.id)
    return _video_out(video, creator.username)


async def update_video(db: AsyncSession, video_id: UUID, payload: VideoWrite) -> VideoOut:
    video = await get_video_or_404(db, video_id)
    _apply_video_fields(video, payload)
    await db.commit()

    row = (await db.execute(_with_creator().where(Video.id == video_id))).first()
    logger.info("Video updated id=%s", video_id)
    return _video_out(row[0], row[1])


async def delete_video(db: AsyncSession, video_id: UUID) -> None:
    video = await get_video_or_404(db, video_id)
    await db.delete(video)
    await db.commit()
    logger.info("Video deleted id=%s", video_id)


async def increment_views(db: AsyncSession, video_id: UUID) -> None:
    result = await db.execute(update(Video).where(Video.id == video_id).values(views=Video.views + 1))
    if not result.rowcount:
        await db.rollback()
        raise NotFoundException(VIDEO_NOT_FOUND)
    await db.commit()


async def top_rated(db: AsyncSession, limit: int = 12) -> List[VideoOut]:
    rows = (
        await db.execute(
            _with_creator()
            .where(Video.total_ratings > 0)
            .order_by(Video.average_rating.desc(), Video.total_ratings.desc())
            .limit(limit)
        )
    ).all()
    return [_video_out(v, username) for v, username in rows]


async def search_videos(
    db: AsyncSession,
    *,
    q: Optional[str] = None,
    category: Optional[str] = None,
    year: Optional[int] = None,
    rating: Optional[float] = None,
) -> List[VideoOut]:
    stmt = _with_creator()
    term = (q or "").strip()
    if term:
        pattern = like_pattern(term)
        stmt = stmt.where(
            or_(
                Video.title.ilike(pattern, escape="\\"),
                Video.description.ilike(pattern, escape="\\"),
                Video.category.ilike(pattern, escape="\\"),
            )
        )
    if category:
        stmt = stmt.where(Video.category == category)
    if year is not None:
        stmt = stmt.where(Video.year == year)
    if rating is not None:
        stmt = stmt.where(Video.average_rating >= rating)

    rows = (await db.execute(stmt.order_by(Video.created_at.desc()))).all()
    return [_video_out(v, username) for v, username in rows]


# ─────────────────────────────────────────────────────────────
# 📺 Episodes
# ─────────────────────────────────────────────────────────────
async def list_episodes(db: AsyncSession, series_id: UUID) -> List[EpisodeOut]:
    rows = (
        await db.execute(
            select(Episode)
            .where(Episode.series_id == series_id)
            .order_by(Episode.season_number.asc(), Episode.episode_number.asc())
        )
    ).scalars().all()
    return [EpisodeOut.model_validate(e) for e in rows]


async def _get_episode_or_404(db: AsyncSession, episode_id: UUID) -> Episode:
    episode = (await db.execute(select(Episode).where(Episode.id == episode_id))).scalar_one_or_none()
    if episode is None:
        raise NotFoundException(EPISODE_NOT_FOUND)
    return episode


async def get_episode(db: AsyncSession, episode_id: UUID) -> EpisodeOut:
    return EpisodeOut.model_validate(await _get_episode_or_404(db, episode_id))


def _episode_conflict(episode_number: int, season_number: int) -> ConflictException:
    return ConflictException(
        f"Un épisode {episode_number} existe déjà dans la saison {season_number}. "
        "Veuillez choisir un autre numéro d'épisode.",
        code="EPISODE_EXISTS",
    )


async def _episode_slot_taken(
    db: AsyncSession,
    series_id: UUID,
    season_number: int,
    episode_number: int,
    *,
    exclude_id: Optional[UUID] = None,
) -> bool:
    stmt = select(Episode.id).where(
        Episode.series_id == series_id,
        Episode.season_number == season_number,
        Episode.episode_number == episode_number,
    )
    if exclude_id is not None:
        stmt = stmt.where(Episode.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


async def create_episode(db: AsyncSession, series_id: UUID, payload: EpisodeCreate) -> EpisodeOut:
    if not payload.title or not payload.video_url or not payload.episode_number:
        raise BadRequestException("Champs requis manquants")

    await get_video_or_404(db, series_id)
    season = payload.season_number or 1

    if await _episode_slot_taken(db, series_id, season, payload.episode_number):
        raise _episode_conflict(payload.episode_number, season)

    episode = Episode(
        series_id=series_id,
        season_number=season,
        episode_number=payload.episode_number,
        title=payload.title,
        description=payload.description,
        thumbnail=payload.thumbnail,
        video_url=payload.video_url,
        duration=payload.duration,
        views=0,
    )
    db.add(episode)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise _episode_conflict(payload.episode_number, season)
    await db.refresh(episode)
    logger.info("Episode created id=%s series=%s S%sE%s", episode.id, series_id, season, episode.episode_number)
    return EpisodeOut.model_validate(episode)


async def update_episode(db: AsyncSession, episode_id: UUID, payload: EpisodeUpdate) -> EpisodeOut:
    episode = await _get_episode_or_404(db, episode_id)
    changes = payload.model_dump(exclude_unset=True)

    season = changes.get("season_number") or episode.season_number
    number = changes.get("episode_number") or episode.episode_number
    if (season, number) != (episode.season_number, episode.episode_number):
        if await _episode_slot_taken(db, episode.series_id, season, number, exclude_id=episode.id):
            raise _episode_conflict(number, season)

    for field, value in changes.items():
        if value is None and field in {"title", "video_url", "episode_number", "season_number"}:
            continue
        setattr(episode, field, value)
    await db.commit()
    await db.refresh(episode)
    return EpisodeOut.model_validate(episode)


async def delete_episode(db: AsyncSession, episode_id: UUID) -> None:
    episode = await _get_episode_or_404(db, episode_id)
    await db.delete(episode)
    await db.commit()
    logger.info("Episode deleted id=%s", episode_id)


__all__ = [
    "get_video_or_404",
    "list_videos",
    "get_video_detail",
    "create_video",
    "update_video",
    "delete_video",
    "increment_views",
    "top_rated",
    "search_videos",
    "list_episodes",
    "get_episode",
    "create_episode",
    "update_episode",
    "delete_episode",
]
