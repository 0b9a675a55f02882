# app/schemas/engagement.py
"""
Favorites, watch history, ratings and notifications.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import CamelModel


class VideoSummary(CamelModel):
    """Video columns joined onto favorites / history rows."""

    title: Optional[str] = None
    thumbnail: Optional[str] = None
    category: Optional[str] = None
    year: Optional[int] = None
    duration: Optional[int] = None
    average_rating: Optional[float] = None
    type: Optional[str] = None


# ──────────────── Favorites ────────────────
class FavoriteCreate(CamelModel):
    user_id: UUID
    video_id: UUID


class FavoriteOut(VideoSummary):
    id: UUID
    user_id: UUID
    video_id: UUID
    added_at: datetime


# ──────────────── Watch history ────────────────
class WatchHistoryCreate(CamelModel):
    user_id: UUID
    video_id: UUID
    progress: int = Field(0, ge=0, le=100)


class WatchHistoryOut(VideoSummary):
    id: UUID
    user_id: UUID
    video_id: UUID
    progress: int
    watched_at: datetime


# ──────────────── Ratings ────────────────
class RatingCreate(CamelModel):
    user_id: UUID
    video_id: UUID
    rating: int = Field(..., ge=1, le=5)


class RatingOut(CamelModel):
    rating: Optional[int] = None


# ──────────────── Notifications ────────────────
class NotificationCreate(CamelModel):
    user_id: Optional[UUID] = None
    title: Optional[str] = None
    message: Optional[str] = None


class NotificationOut(CamelModel):
    id: UUID
    user_id: UUID
    title: str
    message: str
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime
