# app/schemas/streaming.py

from typing import Optional
from uuid import UUID

from app.schemas.base import CamelModel


class VideoRef(CamelModel):
    """`{videoId}` body shared by the session, stream-url and playlist routes."""

    video_id: Optional[UUID] = None


class VideoSessionResponse(CamelModel):
    session_token: str
    expires_in: int


class StreamUrlResponse(CamelModel):
    signed_url: str
    expires_in: int


class HlsPlaylistResponse(CamelModel):
    playlist_url: str
    session_id: str
    expires_in: int
