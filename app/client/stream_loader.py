from __future__ import annotations

"""
Chunked stream loader (client side)
===================================

Plays the part of the web player's loader against this API:

1. `POST {api}/videos/stream-url {videoId}` → short-lived signed URL
2. `HEAD <signed url>` → total size (100 MiB when the origin does not say)
3. sequential `GET` with `Range: bytes=a-b` for each 2 MiB slice, appended to
   a sink (`bytearray`, or anything with `write` / `append`)

The signed URL is renewed once it is older than `url_refresh_interval`
(a failed renewal keeps the current URL). A failed chunk is logged and
skipped. `abort()` stops the loop before the next chunk; task cancellation
reaches the in-flight request.

Example
-------
    loader = StreamLoader("http://localhost:8000/api/v1", video_id, token)
    buf = bytearray()
    await loader.load(buf)
"""

import asyncio
import logging
import time
from typing import Any, Callable, Optional, Union
from uuid import UUID

import httpx

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 2 * 1024 * 1024
DEFAULT_TOTAL_SIZE = 100 * 1024 * 1024
DEFAULT_URL_REFRESH_SECONDS = 240.0

ProgressCallback = Callable[[int, int], Any]


def _append(sink: Any, data: bytes) -> None:
    if isinstance(sink, bytearray):
        sink.extend(data)
    elif hasattr(sink, "write"):
        sink.write(data)
    else:
        sink.append(data)


class StreamLoader:
    """Sequential byte-range downloader for one video."""

    def __init__(
        self,
        api_base_url: str,
        video_id: Union[str, UUID],
        auth_token: str,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        url_refresh_interval: float = DEFAULT_URL_REFRESH_SECONDS,
        default_total_size: int = DEFAULT_TOTAL_SIZE,
        client: Optional[httpx.AsyncClient] = None,
        on_progress: Optional[ProgressCallback] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.api_base_url = api_base_url.rstrip("/")
        self.video_id = str(video_id)
        self.auth_token = auth_token
        self.chunk_size = chunk_size
        self.url_refresh_interval = url_refresh_interval
        self.default_total_size = default_total_size
        self.on_progress = on_progress

        self._client = client
        self._owns_client = client is None
        self._clock = clock
        self._abort = asyncio.Event()

        self.signed_url: Optional[str] = None
        self._url_issued_at = 0.0
        self.total_size = 0
        self.loaded = 0

    # ─────────────────────────────────────────────────────────
    # Control
    # ─────────────────────────────────────────────────────────
    def abort(self) -> None:
        self._abort.set()

    @property
    def aborted(self) -> bool:
        return self._abort.is_set()

    # ─────────────────────────────────────────────────────────
    # HTTP steps
    # ─────────────────────────────────────────────────────────
    async def fetch_signed_url(self) -> str:
        response = await self._client.post(
            f"{self.api_base_url}/videos/stream-url",
            json={"videoId": self.video_id},
            headers={"Authorization": f"Bearer {self.auth_token}"},
        )
        response.raise_for_status()
        url = response.json()["signedUrl"]
        self.signed_url = url
        self._url_issued_at = self._clock()
        return url

    async def _refresh_url_if_stale(self) -> None:
        if self._clock() - self._url_issued_at < self.url_refresh_interval:
            return
        try:
            await self.fetch_signed_url()
            logger.debug("Signed URL renewed for video %s", self.video_id)
        except (httpx.HTTPError, KeyError, ValueError) as e:
            logger.warning("Signed URL renewal failed for video %s, keeping current one: %s", self.video_id, e)

    async def fetch_total_size(self) -> int:
        try:
            response = await self._client.head(self.signed_url)
            raw = response.headers.get("content-length")
        except httpx.HTTPError as e:
            logger.warning("HEAD failed for video %s: %s", self.video_id, e)
            raw = None
        if raw and raw.isdigit() and int(raw) > 0:
            return int(raw)
        return self.default_total_size

    async def fetch_chunk(self, start: int, end: int) -> bytes:
        response = await self._client.get(self.signed_url, headers={"Range": f"bytes={start}-{end}"})
        response.raise_for_status()
        return response.content

    # ─────────────────────────────────────────────────────────
    # Main loop
    # ─────────────────────────────────────────────────────────
    async def load(self, sink: Any) -> int:
        """Download every chunk into `sink`; returns the number of bytes appended."""
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
        try:
            await self.fetch_signed_url()
            self.total_size = await self.fetch_total_size()
            logger.info(
                "Loading video %s: %s bytes in %s-byte chunks",
                self.video_id, self.total_size, self.chunk_size,
            )

            for start in range(0, self.total_size, self.chunk_size):
                if self.aborted:
                    logger.info("Load aborted for video %s at %s bytes", self.video_id, self.loaded)
                    break
                end = min(start + self.chunk_size, self.total_size) - 1
                await self._refresh_url_if_stale()
                try:
                    data = await self.fetch_chunk(start, end)
                except httpx.HTTPError as e:
                    logger.warning("Chunk %s-%s failed for video %s: %s", start, end, self.video_id, e)
                    continue

                _append(sink, data)
                self.loaded += len(data)
                if self.on_progress is not None:
                    self.on_progress(self.loaded, self.total_size)
            return self.loaded
        finally:
            if self._owns_client:
                await self._client.aclose()
                self._client = None


__all__ = ["StreamLoader", "DEFAULT_CHUNK_SIZE", "DEFAULT_TOTAL_SIZE"]
