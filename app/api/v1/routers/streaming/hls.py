"""
📡 Yunoa • HLS delivery
=======================

POST /videos/hls/playlist       {videoId} (Bearer) → {playlistUrl, sessionId, expiresIn}
GET  /videos/hls/playlist.m3u8?token=
GET  /videos/hls/segment.ts?token=&index=

The playlist and segment routes authenticate by the `hls` token + Redis
session and check Referer/Origin; see `app.services.hls_service`.
"""

from typing import Optional

import httpx
from fastapi import APIRouter, Body, Depends, Query, Request, Response
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import StreamingResponse

from app.core.limiter import rate_limit
from app.core.security import get_current_user
from app.db.models.user import User
from app.db.session import get_async_db
from app.schemas.streaming import HlsPlaylistResponse, VideoRef
from app.security_headers import set_sensitive_cache
from app.services import hls_service
from app.services.upstream import get_upstream_client

router = APIRouter(prefix="/videos/hls", tags=["HLS"])


@router.post("/playlist", response_model=HlsPlaylistResponse, summary="Open an HLS session")
@rate_limit("30/minute")
async def create_playlist(
    request: Request,
    response: Response,
    payload: VideoRef = Body(...),
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> HlsPlaylistResponse:
    set_sensitive_cache(response)
    return await hls_service.create_playlist_session(
        db, current_user, payload.video_id, base_url=str(request.base_url)
    )


@router.get("/playlist.m3u8", response_class=PlainTextResponse, summary="HLS playlist")
async def playlist(
    request: Request,
    token: Optional[str] = Query(None),
    client: httpx.AsyncClient = Depends(get_upstream_client),
) -> PlainTextResponse:
    return await hls_service.render_playlist(request, client, token)


@router.get("/segment.ts", summary="HLS segment")
async def segment(
    request: Request,
    token: Optional[str] = Query(None),
    index: Optional[str] = Query(None),
    client: httpx.AsyncClient = Depends(get_upstream_client),
) -> StreamingResponse:
    return await hls_service.stream_segment(request, client, token, index)


__all__ = ["router"]
