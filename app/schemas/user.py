# app/schemas/user.py
"""
User administration and statistics DTOs.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import Field

from app.schemas.base import CamelModel
from app.schemas.enums import ActivityType, UserRole


class UserAdminOut(CamelModel):
    id: UUID
    username: str
    email: str
    role: str
    is_first_login: bool = True
    created_at: Optional[datetime] = None
    total_favorites: int = 0
    total_watched: int = 0


class UserUpdate(CamelModel):
    username: str = Field(..., min_length=1, max_length=50)
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    role: UserRole = UserRole.USER


class UserStats(CamelModel):
    total_watched: int = 0
    total_favorites: int = 0
    total_ratings: int = 0
    total_hours: int = 0


class ActivityItem(CamelModel):
    type: ActivityType
    date: datetime
    video_id: UUID
    title: Optional[str] = None
    thumbnail: Optional[str] = None
    category: Optional[str] = None
    average_rating: Optional[float] = None
    video_type: Optional[str] = None
    user_rating: Optional[int] = None


class TopCategory(CamelModel):
    category: str
    count: int
    total_views: int = 0


class PlatformStats(CamelModel):
    total_videos: int = 0
    total_movies: int = 0
    total_series: int = 0
    total_users: int = 0
    total_categories: int = 0
    total_views: int = 0
    average_rating: str = "0.0"
    recent_users: int = 0
    top_categories: List[TopCategory] = []
