from __future__ import annotations

"""
❤️ Yunoa — Engagement rows (favorites, ratings, watch history)
==============================================================

All three are keyed by (user, video) with a unique constraint: one favorite,
one rating and one resume position per user per video. Rows disappear with
either parent (`ondelete="CASCADE"`).
"""

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, UniqueConstraint, Uuid, func
from sqlalchemy.orm import relationship

from app.db.base_class import Base, UUIDPKMixin
from app.utils.dates import utcnow


def _user_fk() -> Column:
    return Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)


def _video_fk() -> Column:
    return Column(Uuid(as_uuid=True), ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True)


def _stamp() -> Column:
    return Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())


class Favorite(UUIDPKMixin, Base):
    __tablename__ = "favorites"

    user_id = _user_fk()
    video_id = _video_fk()
    added_at = _stamp()

    __table_args__ = (
        UniqueConstraint("user_id", "video_id", name="uq_favorites_user_video"),
        Index("ix_favorites_user_added", "user_id", "added_at"),
    )

    user = relationship("User", back_populates="favorites", lazy="noload")
    video = relationship("Video", lazy="noload")


class Rating(UUIDPKMixin, Base):
    __tablename__ = "ratings"

    user_id = _user_fk()
    video_id = _video_fk()
    rating = Column(Integer, nullable=False)
    rated_at = _stamp()

    __table_args__ = (
        UniqueConstraint("user_id", "video_id", name="uq_ratings_user_video"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="rating_range"),
    )

    user = relationship("User", back_populates="ratings", lazy="noload")
    video = relationship("Video", lazy="noload")


class WatchHistory(UUIDPKMixin, Base):
    __tablename__ = "watch_history"

    user_id = _user_fk()
    video_id = _video_fk()
    progress = Column(Integer, nullable=False, default=0, server_default="0", doc="Percent watched, 0–100.")
    watched_at = _stamp()

    __table_args__ = (
        UniqueConstraint("user_id", "video_id", name="uq_watch_history_user_video"),
        CheckConstraint("progress >= 0 AND progress <= 100", name="progress_range"),
        Index("ix_watch_history_user_watched", "user_id", "watched_at"),
    )

    user = relationship("User", back_populates="watch_history", lazy="noload")
    video = relationship("Video", lazy="noload")
