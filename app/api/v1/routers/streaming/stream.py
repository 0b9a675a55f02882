"""
🎞️ Yunoa • Playback sessions & signed streams
=============================================

POST /video-session           {videoId} → {sessionToken, expiresIn: 14400}
POST /videos/stream-url       {videoId} → {signedUrl, expiresIn: 300}
GET  /videos/{id}/stream?token=
    Range-aware relay of the media origin. The token must be a `stream`
    token minted for *this* video (401 missing/invalid, 403 other video).

Security
--------
- Session and URL minting need a Bearer token and are rate-limited.
- The stream route authenticates by its query token only (players cannot
  attach headers to `<video src>`), and is never cached.
"""

from typing import Optional
from uuid import UUID

import httpx
from fastapi import APIRouter, Body, Depends, Query, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import StreamingResponse

from app.core.limiter import rate_limit
from app.core.security import get_current_user
from app.db.models.user import User
from app.db.session import get_async_db
from app.schemas.streaming import StreamUrlResponse, VideoRef, VideoSessionResponse
from app.security_headers import set_sensitive_cache
from app.services import stream_service
from app.services.upstream import get_upstream_client

router = APIRouter(tags=["Streaming"])


@router.post("/video-session", response_model=VideoSessionResponse, summary="Open a playback session")
@rate_limit("30/minute")
async def create_video_session(
    request: Request,
    response: Response,
    payload: VideoRef = Body(...),
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> VideoSessionResponse:
    set_sensitive_cache(response)
    return await stream_service.create_video_session(db, current_user, payload.video_id)


@router.post("/videos/stream-url", response_model=StreamUrlResponse, summary="Mint a signed stream URL")
@rate_limit("60/minute")
async def create_stream_url(
    request: Request,
    response: Response,
    payload: VideoRef = Body(...),
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> StreamUrlResponse:
    set_sensitive_cache(response)
    return await stream_service.create_stream_url(
        db, current_user, payload.video_id, base_url=str(request.base_url)
    )


@router.get("/videos/{video_id}/stream", summary="Stream a video (Range aware)")
async def stream_video(
    request: Request,
    video_id: UUID,
    token: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_async_db),
    client: httpx.AsyncClient = Depends(get_upstream_client),
) -> StreamingResponse:
    return await stream_service.stream_video(
        db,
        client,
        video_id,
        token=token,
        range_header=request.headers.get("range"),
    )


__all__ = ["router"]
