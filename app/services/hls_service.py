from __future__ import annotations

"""
HLS delivery
============

Architecture
------------
1. `POST /videos/hls/playlist` stores a session in Redis
   (`hls:session:<sid>`, TTL `HLS_SESSION_EXPIRE_SECONDS`) and returns a
   playlist URL carrying an `hls` token bound to (user, video, session).
2. `GET /videos/hls/playlist.m3u8?token=` checks token + session + caller
   origin, sizes the source with a HEAD and lists fixed-size segments
   (`ceil(size / HLS_SEGMENT_BYTES)`, default `HLS_DEFAULT_SEGMENTS`, capped
   at `HLS_MAX_SEGMENTS`).
3. `GET /videos/hls/segment.ts?token=&index=` maps segment *i* to the byte
   range `[i*S, (i+1)*S - 1]` of the source and relays it as `video/mp2t`.
"""

import logging
import math
import secrets
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode, urlparse
from uuid import UUID

import httpx
from fastapi import HTTPException, Request, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import StreamingResponse

from app.core.config import settings
from app.core.exceptions import BadRequestException
from app.core.jwt import decode_token
from app.core.redis_client import redis_wrapper
from app.core.security import create_hls_token
from app.db.models.user import User
from app.schemas.streaming import HlsPlaylistResponse
from app.services.stream_service import get_playable_video, require_video_id
from app.services.upstream import head_content_length, open_range, relay
from app.utils.dates import utcnow

logger = logging.getLogger("streaming")

SESSION_PREFIX = "hls:session:"
PLAYLIST_MEDIA_TYPE = "application/vnd.apple.mpegurl"
SEGMENT_MEDIA_TYPE = "video/mp2t"
NO_CACHE = "no-cache, no-store, must-revalidate"


def _session_key(session_id: str) -> str:
    return f"{SESSION_PREFIX}{session_id}"


def _hls_base(base_url: str) -> str:
    return f"{base_url.rstrip('/')}{settings.API_V1_STR}/videos/hls"


# ─────────────────────────────────────────────────────────────
# 🎫 Session creation
# ─────────────────────────────────────────────────────────────
async def create_playlist_session(
    db: AsyncSession,
    user: User,
    video_id: Optional[UUID],
    *,
    base_url: str,
) -> HlsPlaylistResponse:
    video = await get_playable_video(db, require_video_id(video_id))

    session_id = secrets.token_urlsafe(16)
    ttl = settings.HLS_SESSION_EXPIRE_SECONDS
    await redis_wrapper.json_set(
        _session_key(session_id),
        {
            "userId": str(user.id),
            "videoId": str(video.id),
            "videoUrl": video.video_url,
            "createdAt": utcnow().isoformat(),
        },
        ttl_seconds=ttl,
    )
    token = create_hls_token(user.id, video.id, session_id)
    logger.info("HLS session %s opened user=%s video=%s", session_id, user.id, video.id)
    return HlsPlaylistResponse(
        playlist_url=f"{_hls_base(base_url)}/playlist.m3u8?{urlencode({'token': token})}",
        session_id=session_id,
        expires_in=ttl,
    )


# ─────────────────────────────────────────────────────────────
# 🔎 Token, session & origin checks
# ─────────────────────────────────────────────────────────────
async def resolve_session(token: Optional[str]) -> Dict[str, Any]:
    """Decode an `hls` token and load its live session (401 otherwise)."""
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token manquant")
    payload = await decode_token(token, expected_types=["hls"])

    session = await redis_wrapper.json_get(_session_key(str(payload.get("sid"))))
    if not session:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expirée")
    if session.get("videoId") != payload.get("vid") or session.get("userId") != payload.get("sub"):
        logger.warning("HLS token/session mismatch sid=%s", payload.get("sid"))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token invalide")
    return session


def _origin_of(url: str) -> str:
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return ""
    return f"{parsed.scheme}://{parsed.netloc}".lower()


def origin_allowed(request: Request) -> bool:
    """Referer/Origin, when present, must be this host or an allowed origin."""
    candidates = [v for v in (request.headers.get("referer"), request.headers.get("origin")) if v]
    if not candidates:
        return True
    host = (request.headers.get("host") or "").lower()
    allowed = {o.lower() for o in settings.stream_origins_list}
    for value in candidates:
        origin = _origin_of(value)
        if origin and (urlparse(origin).netloc == host or origin in allowed):
            return True
    return False


def ensure_origin(request: Request, session: Dict[str, Any]) -> None:
    if not origin_allowed(request):
        logger.warning(
            "INVALID_REFERER_HLS user=%s video=%s referer=%s origin=%s",
            session.get("userId"), session.get("videoId"),
            request.headers.get("referer"), request.headers.get("origin"),
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Accès refusé")


# ─────────────────────────────────────────────────────────────
# 📜 Playlist
# ─────────────────────────────────────────────────────────────
def segment_count(content_length: Optional[int]) -> int:
    if not content_length or content_length <= 0:
        count = settings.HLS_DEFAULT_SEGMENTS
    else:
        count = math.ceil(content_length / settings.HLS_SEGMENT_BYTES)
    return min(count, settings.HLS_MAX_SEGMENTS)


def build_playlist(segment_urls: List[str], *, target_duration: int) -> str:
    lines = [
        "#EXTM3U",
        "#EXT-X-VERSION:3",
        f"#EXT-X-TARGETDURATION:{target_duration}",
        "#EXT-X-MEDIA-SEQUENCE:0",
    ]
    for url in segment_urls:
        lines.append(f"#EXTINF:{float(target_duration):.1f},")
        lines.append(url)
    lines.append("#EXT-X-ENDLIST")
    return "\n".join(lines) + "\n"


async def render_playlist(
    request: Request,
    client: httpx.AsyncClient,
    token: Optional[str],
) -> PlainTextResponse:
    session = await resolve_session(token)
    ensure_origin(request, session)

    size = await head_content_length(client, session["videoUrl"])
    count = segment_count(size)
    base = _hls_base(str(request.base_url))
    urls = [f"{base}/segment.ts?{urlencode({'token': token, 'index': i})}" for i in range(count)]

    body = build_playlist(urls, target_duration=settings.HLS_SEGMENT_DURATION)
    return PlainTextResponse(
        body,
        media_type=PLAYLIST_MEDIA_TYPE,
        headers={"Cache-Control": NO_CACHE},
    )


# ─────────────────────────────────────────────────────────────
# 🎞️ Segments
# ─────────────────────────────────────────────────────────────
def parse_index(raw: Optional[str]) -> int:
    try:
        index = int(raw if raw is not None else "0")
    except ValueError:
        raise BadRequestException("Index de segment invalide")
    if index < 0:
        raise BadRequestException("Index de segment invalide")
    return index


def segment_range(index: int) -> str:
    size = settings.HLS_SEGMENT_BYTES
    start = index * size
    return f"bytes={start}-{start + size - 1}"


async def stream_segment(
    request: Request,
    client: httpx.AsyncClient,
    token: Optional[str],
    raw_index: Optional[str],
) -> StreamingResponse:
    session = await resolve_session(token)
    ensure_origin(request, session)
    index = parse_index(raw_index)

    upstream = await open_range(client, session["videoUrl"], segment_range(index))
    headers = {"Cache-Control": f"{NO_CACHE}, private", "X-Content-Type-Options": "nosniff"}
    response = relay(upstream, media_type=SEGMENT_MEDIA_TYPE, extra_headers=headers)
    if upstream.status_code != 206 and "content-range" in response.headers:
        del response.headers["content-range"]
    return response


__all__ = [
    "create_playlist_session",
    "resolve_session",
    "origin_allowed",
    "segment_count",
    "build_playlist",
    "render_playlist",
    "parse_index",
    "segment_range",
    "stream_segment",
]
