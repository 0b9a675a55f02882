# app/middleware/request_id.py
from __future__ import annotations

"""
# Yunoa — Request ID Middleware (pure ASGI)

- Reuses a client-supplied `X-Request-ID` / `X-Correlation-ID` when it is a UUIDv4.
- Generates a UUIDv4 otherwise.
- Stores it on `request.state.request_id` and echoes it on the response.
- Binds `request_id` into the loguru context for the whole request, so billing,
  streaming and auth logs can be correlated with the problem+json error bodies.

## Usage
    app.add_middleware(RequestIDMiddleware)
    rid = get_request_id(request)
"""

import os
import uuid

from loguru import logger
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

HEADER_NAME = os.getenv("REQUEST_ID_HEADER_NAME", "X-Request-ID")
TRUST_CLIENT_IDS = os.getenv("REQUEST_ID_TRUST_CLIENT_IDS", "true").lower() == "true"


def _parse_uuid4(value: str | None) -> str | None:
    if not value or len(value) > 64:
        return None
    try:
        parsed = uuid.UUID(value.strip())
    except ValueError:
        return None
    return str(parsed) if parsed.version == 4 else None


class RequestIDMiddleware:
    """Attach a per-request correlation id to state, logs and the response."""

    def __init__(self, app: ASGIApp, header_name: str = HEADER_NAME) -> None:
        self.app = app
        self.header_name = header_name
        self._header_bytes = header_name.lower().encode("latin-1")

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            return await self.app(scope, receive, send)

        headers = Headers(scope=scope)
        req_id = None
        if TRUST_CLIENT_IDS:
            req_id = _parse_uuid4(headers.get(self.header_name)) or _parse_uuid4(
                headers.get("X-Correlation-ID")
            )
        req_id = req_id or str(uuid.uuid4())
        scope.setdefault("state", {})["request_id"] = req_id

        async def _send(message: Message) -> None:
            if message["type"] == "http.response.start":
                raw = [(k, v) for (k, v) in message.get("headers", []) if k.lower() != self._header_bytes]
                raw.append((self.header_name.encode("latin-1"), req_id.encode("latin-1")))
                message["headers"] = raw
            await send(message)

        with logger.contextualize(request_id=req_id):
            await self.app(scope, receive, _send)


def get_request_id(request) -> str:
    """Current request id from `request.state` ("" when the middleware is absent)."""
    return getattr(getattr(request, "state", object()), "request_id", "") or ""


__all__ = ["RequestIDMiddleware", "get_request_id"]
