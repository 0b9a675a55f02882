from __future__ import annotations

"""
💬 Yunoa — Subtitle track (SRT file on disk, served under /subtitles)
"""

from sqlalchemy import Boolean, Column, ForeignKey, String, Uuid, false
from sqlalchemy.orm import relationship

from app.db.base_class import Base, CreatedAtMixin, UUIDPKMixin


class Subtitle(UUIDPKMixin, CreatedAtMixin, Base):
    __tablename__ = "subtitles"

    video_id = Column(Uuid(as_uuid=True), ForeignKey("videos.id", ondelete="CASCADE"), nullable=False, index=True)
    language = Column(String(16), nullable=False)
    language_name = Column(String(64), nullable=True)
    subtitle_url = Column(String(512), nullable=False)
    is_default = Column(Boolean, nullable=False, default=False, server_default=false())

    __mapper_args__ = {"eager_defaults": True}

    video = relationship("Video", back_populates="subtitles", lazy="noload")
