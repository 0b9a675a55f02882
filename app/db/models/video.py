from __future__ import annotations

"""
🎬 Yunoa — Video (movie or series)
==================================

A catalog entry. Series carry their episodes in `episodes`; movies play
`video_url` directly. Rating aggregates (`average_rating`, `total_ratings`)
are denormalized here and recomputed whenever a rating is written.

`category` is the category *name* (not an FK): categories can be renamed or
deleted without touching videos, and category counts join on the name.
"""

from sqlalchemy import CheckConstraint, Column, Float, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import relationship

from app.db.base_class import Base, CreatedAtMixin, UUIDPKMixin
from app.schemas.enums import VideoType


class Video(UUIDPKMixin, CreatedAtMixin, Base):
    __tablename__ = "videos"

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    thumbnail = Column(String(1024), nullable=True)
    video_url = Column(String(2048), nullable=True)
    duration = Column(Integer, nullable=True, doc="Runtime in minutes.")
    category = Column(String(100), nullable=True, index=True)
    language = Column(String(50), nullable=True)
    year = Column(Integer, nullable=True)
    type = Column(String(16), nullable=False, default=VideoType.MOVIE.value, server_default=VideoType.MOVIE.value)
    total_seasons = Column(Integer, nullable=False, default=1, server_default="1")
    total_episodes = Column(Integer, nullable=False, default=1, server_default="1")
    views = Column(Integer, nullable=False, default=0, server_default="0")
    average_rating = Column(Float, nullable=False, default=0.0, server_default="0")
    total_ratings = Column(Integer, nullable=False, default=0, server_default="0")
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        CheckConstraint("type IN ('movie', 'series')", name="type_valid"),
        CheckConstraint("views >= 0", name="views_non_negative"),
        CheckConstraint("total_ratings >= 0", name="total_ratings_non_negative"),
        CheckConstraint("average_rating >= 0 AND average_rating <= 5", name="average_rating_range"),
        Index("ix_videos_rating_rank", "average_rating", "total_ratings"),
    )

    episodes = relationship(
        "Episode",
        back_populates="series",
        passive_deletes=True,
        lazy="noload",
    )
    subtitles = relationship(
        "Subtitle",
        back_populates="video",
        passive_deletes=True,
        lazy="noload",
    )
