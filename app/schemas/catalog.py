# app/schemas/catalog.py
"""
Catalog DTOs: videos, episodes, subtitles, categories.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import CamelModel
from app.schemas.enums import VideoType


# ──────────────── Subtitles ────────────────
class SubtitleOut(CamelModel):
    id: UUID
    video_id: UUID
    language: str
    language_name: Optional[str] = None
    subtitle_url: str
    is_default: bool = False
    created_at: Optional[datetime] = None


# ──────────────── Episodes ────────────────
class EpisodeCreate(CamelModel):
    episode_number: Optional[int] = Field(None, ge=1)
    season_number: Optional[int] = Field(None, ge=1)
    title: Optional[str] = None
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    video_url: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0)


class EpisodeUpdate(CamelModel):
    episode_number: Optional[int] = Field(None, ge=1)
    season_number: Optional[int] = Field(None, ge=1)
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    video_url: Optional[str] = Field(None, min_length=1)
    duration: Optional[int] = Field(None, ge=0)


class EpisodeOut(CamelModel):
    id: UUID
    series_id: UUID
    season_number: int
    episode_number: int
    title: str
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    video_url: str
    duration: Optional[int] = None
    views: int = 0
    created_at: Optional[datetime] = None


# ──────────────── Videos ────────────────
class VideoWrite(CamelModel):
    """Body for admin create/update; omitted counters fall back to 1."""

    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    video_url: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0)
    category: Optional[str] = None
    language: Optional[str] = None
    year: Optional[int] = Field(None, ge=1800, le=3000)
    type: VideoType = VideoType.MOVIE
    total_seasons: Optional[int] = Field(None, ge=1)
    total_episodes: Optional[int] = Field(None, ge=1)


class VideoOut(CamelModel):
    id: UUID
    title: str
    description: Optional[str] = None
    thumbnail: Optional[str] = None
    video_url: Optional[str] = None
    duration: Optional[int] = None
    category: Optional[str] = None
    language: Optional[str] = None
    year: Optional[int] = None
    type: str
    total_seasons: int = 1
    total_episodes: int = 1
    views: int = 0
    average_rating: float = 0.0
    total_ratings: int = 0
    created_by: Optional[UUID] = None
    created_by_username: Optional[str] = None
    created_at: Optional[datetime] = None


class VideoDetail(VideoOut):
    subtitles: List[SubtitleOut] = []
    episodes: List[EpisodeOut] = []


# ──────────────── Categories ────────────────
class CategoryWrite(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    color: Optional[str] = Field(None, max_length=32)


class CategoryOut(CamelModel):
    id: UUID
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    video_count: int = 0
    created_at: Optional[datetime] = None
