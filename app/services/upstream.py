from __future__ import annotations

"""
Upstream media origin (httpx)
=============================

One shared `httpx.AsyncClient` for every call to the media origin (HEAD for
sizes, ranged GET for bytes). Routes receive it through the
`get_upstream_client` dependency so tests can override it with a client
built on `httpx.MockTransport`.

Network failures become `UpstreamException` (502). Non-2xx answers are
surfaced with the upstream status so the player sees the real cause
(416 past the end of the file, 404 for a missing object).
"""

import logging
from typing import Dict, Optional

import httpx
from starlette.background import BackgroundTask
from starlette.responses import StreamingResponse

from app.core.config import settings
from app.core.exceptions import AppException, UpstreamException

logger = logging.getLogger(__name__)

# aiter_raw() keeps the origin encoding, so its label travels with the bytes
PASSTHROUGH_HEADERS = ("content-range", "content-length", "accept-ranges", "content-encoding")

_client: Optional[httpx.AsyncClient] = None


def get_upstream_client() -> httpx.AsyncClient:
    """FastAPI dependency returning the shared client (lazily created)."""
    global _client
    if _client is None:
        _client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.UPSTREAM_TIMEOUT_SECONDS),
            follow_redirects=True,
        )
    return _client


async def close_upstream_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


async def head_content_length(client: httpx.AsyncClient, url: str) -> Optional[int]:
    """Content-Length from a HEAD, or None when unknown/unreachable."""
    try:
        response = await client.head(url)
    except httpx.HTTPError as e:
        logger.warning("HEAD %s failed: %s", url, e)
        return None
    raw = response.headers.get("content-length")
    if not raw or not raw.isdigit():
        return None
    return int(raw)


async def open_range(client: httpx.AsyncClient, url: str, range_header: Optional[str]) -> httpx.Response:
    """Send a (ranged) GET and return the streaming response.

    Raises `UpstreamException` on network errors and `AppException` with the
    upstream status when the origin answers outside 2xx.
    """
    headers: Dict[str, str] = {}
    if range_header:
        headers["Range"] = range_header
    request = client.build_request("GET", url, headers=headers)
    try:
        response = await client.send(request, stream=True)
    except httpx.HTTPError as e:
        logger.error("Upstream GET %s failed: %s", url, e)
        raise UpstreamException("Erreur de récupération vidéo")

    if not (200 <= response.status_code < 300):
        await response.aclose()
        logger.warning("Upstream GET %s answered %s", url, response.status_code)
        raise AppException(
            status_code=response.status_code,
            message="Erreur de récupération vidéo",
            code="UPSTREAM_STATUS",
        )
    return response


def relay(
    upstream: httpx.Response,
    *,
    media_type: Optional[str] = None,
    extra_headers: Optional[Dict[str, str]] = None,
) -> StreamingResponse:
    """Stream `upstream` to the client, copying the range and encoding headers."""
    headers = {k: upstream.headers[k] for k in PASSTHROUGH_HEADERS if k in upstream.headers}
    headers.update(extra_headers or {})
    return StreamingResponse(
        upstream.aiter_raw(),
        status_code=upstream.status_code,
        headers=headers,
        media_type=media_type or upstream.headers.get("content-type", "application/octet-stream"),
        background=BackgroundTask(upstream.aclose),
    )


__all__ = [
    "get_upstream_client",
    "close_upstream_client",
    "head_content_length",
    "open_range",
    "relay",
]
