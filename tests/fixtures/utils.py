# tests/fixtures/utils.py
"""
Media origin double for streaming tests.

`MockOrigin` answers HEAD with the payload size and GET with the requested
byte range (206) or the whole payload (200), and records every request.
It plugs into the app through the `get_upstream_client` override.
"""

import re
from typing import AsyncIterator, List, Optional

import httpx
import pytest

_RANGE = re.compile(r"bytes=(\d+)-(\d*)")


async def _stream(data: bytes, chunk: int = 4096) -> AsyncIterator[bytes]:
    for start in range(0, len(data), chunk):
        yield data[start:start + chunk]


class MockOrigin:
    def __init__(self, payload: bytes = b"", *, content_type: str = "video/mp4") -> None:
        self.payload = payload
        self.content_type = content_type
        self.requests: List[httpx.Request] = []
        self.fail_with: Optional[int] = None
        self.report_length = True
        self.content_encoding: Optional[str] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, content=b"")

        size = len(self.payload)
        if request.method == "HEAD":
            headers = {"content-type": self.content_type}
            if self.report_length:
                headers["content-length"] = str(size)
            return httpx.Response(200, headers=headers)

        match = _RANGE.match(request.headers.get("range", ""))
        if not match:
            return httpx.Response(200, content=_stream(self.payload), headers=self._headers(size))

        start = int(match.group(1))
        end = int(match.group(2)) if match.group(2) else size - 1
        if start >= size:
            return httpx.Response(416, headers={"content-range": f"bytes */{size}"})
        end = min(end, size - 1)
        headers = self._headers(end - start + 1)
        headers["content-range"] = f"bytes {start}-{end}/{size}"
        headers["accept-ranges"] = "bytes"
        return httpx.Response(206, content=_stream(self.payload[start:end + 1]), headers=headers)

    def _headers(self, length: int) -> dict:
        headers = {"content-type": self.content_type, "content-length": str(length)}
        if self.content_encoding:
            headers["content-encoding"] = self.content_encoding
        return headers

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture()
async def mock_origin(app):
    """Install a `MockOrigin` as the app's upstream client."""
    from app.services.upstream import get_upstream_client

    origin = MockOrigin(bytes(range(256)) * 64)
    client = origin.client()
    app.dependency_overrides[get_upstream_client] = lambda: client
    yield origin
    await client.aclose()
