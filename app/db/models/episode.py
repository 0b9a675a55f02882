from __future__ import annotations

"""
📺 Yunoa — Episode (series child)

One row per (series, season, episode); the unique constraint is what turns
a duplicate admin create into a 409.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from app.db.base_class import Base, CreatedAtMixin, UUIDPKMixin


class Episode(UUIDPKMixin, CreatedAtMixin, Base):
    __tablename__ = "episodes"

    series_id = Column(Uuid(as_uuid=True), ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True)
    season_number = Column(Integer, nullable=False, default=1, server_default="1")
    episode_number = Column(Integer, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    thumbnail = Column(String(1024), nullable=True)
    video_url = Column(String(2048), nullable=False)
    duration = Column(Integer, nullable=True)
    views = Column(Integer, nullable=False, default=0, server_default="0")

    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        UniqueConstraint("series_id", "season_number", "episode_number", name="uq_episodes_series_season_episode"),
        CheckConstraint("season_number >= 1", name="season_positive"),
        CheckConstraint("episode_number >= 1", name="episode_positive"),
    )

    series = relationship("Video", back_populates="episodes", lazy="noload")
