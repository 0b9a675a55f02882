from __future__ import annotations

"""
Playback sessions & signed stream URLs
======================================

- `create_video_session` — 4-hour `video_session` token for the player.
- `create_stream_url` — 5-minute `stream` token embedded in
  `/api/v1/videos/{id}/stream?token=...`.
- `stream_video` — validates that token for *this* video and relays the
  client's `Range` request to the media origin.
"""

import logging
from typing import Optional
from urllib.parse import urlencode
from uuid import UUID

import httpx
from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import StreamingResponse

from app.core.config import settings
from app.core.exceptions import BadRequestException, NotFoundException
from app.core.jwt import decode_token
from app.core.security import create_stream_token, create_video_session_token
from app.db.models.user import User
from app.db.models.video import Video
from app.schemas.streaming import StreamUrlResponse, VideoSessionResponse
from app.services.upstream import open_range, relay
from app.services.video_service import get_video_or_404

logger = logging.getLogger("streaming")

VIDEO_ID_REQUIRED = "ID de vidéo requis"


def require_video_id(video_id: Optional[UUID]) -> UUID:
    if video_id is None:
        raise BadRequestException(VIDEO_ID_REQUIRED)
    return video_id


async def get_playable_video(db: AsyncSession, video_id: UUID) -> Video:
    video = await get_video_or_404(db, video_id)
    if not video.video_url:
        raise NotFoundException("Vidéo non trouvée")
    return video


async def create_video_session(db: AsyncSession, user: User, video_id: Optional[UUID]) -> VideoSessionResponse:
    video = await get_video_or_404(db, require_video_id(video_id))
    logger.info("Video session issued user=%s video=%s", user.id, video.id)
    return VideoSessionResponse(
        session_token=create_video_session_token(user, video.id),
        expires_in=settings.VIDEO_SESSION_EXPIRE_SECONDS,
    )


async def create_stream_url(
    db: AsyncSession,
    user: User,
    video_id: Optional[UUID],
    *,
    base_url: str,
) -> StreamUrlResponse:
    video = await get_playable_video(db, require_video_id(video_id))
    token = create_stream_token(user.id, video.id)
    query = urlencode({"token": token})
    return StreamUrlResponse(
        signed_url=f"{base_url.rstrip('/')}{settings.API_V1_STR}/videos/{video.id}/stream?{query}",
        expires_in=settings.STREAM_URL_EXPIRE_SECONDS,
    )


async def verify_stream_token(token: Optional[str], video_id: UUID) -> dict:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token manquant")
    payload = await decode_token(token, expected_types=["stream"])
    if payload.get("vid") != str(video_id):
        logger.warning("Stream token for %s used on %s", payload.get("vid"), video_id)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Token non valide pour cette vidéo")
    return payload


async def stream_video(
    db: AsyncSession,
    client: httpx.AsyncClient,
    video_id: UUID,
    *,
    token: Optional[str],
    range_header: Optional[str],
) -> StreamingResponse:
    await verify_stream_token(token, video_id)
    video = await get_playable_video(db, video_id)

    upstream = await open_range(client, video.video_url, range_header)
    extra = {"Cache-Control": "no-store, private", "X-Content-Type-Options": "nosniff"}
    if "accept-ranges" not in upstream.headers:
        extra["Accept-Ranges"] = "bytes"
    return relay(upstream, extra_headers=extra)


__all__ = [
    "require_video_id",
    "get_playable_video",
    "create_video_session",
    "create_stream_url",
    "verify_stream_token",
    "stream_video",
]
