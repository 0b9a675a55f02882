# app/core/exception_handlers.py
from __future__ import annotations

"""
Problem+JSON exception handlers (RFC 7807).

Registered by `app.main.create_app`. Every error leaves the API as
`application/problem+json`:

    {"type", "title", "status", "detail", "instance", "request_id", "code"?, "details"?, "errors"?}

Unhandled exceptions are logged with their traceback and answered with a
generic, localized 500 so internals never leak.
"""

import logging
from http import HTTPStatus
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.exceptions import AppException
from app.middleware.request_id import get_request_id

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = {
    "fr": "Erreur serveur interne",
    "en": "Internal server error",
}


def generic_error_message(locale: Optional[str] = None) -> str:
    return GENERIC_SERVER_ERROR.get(locale or settings.ERROR_LOCALE, GENERIC_SERVER_ERROR["en"])


def _title(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def _problem(
    request: Request,
    status_code: int,
    detail: Any,
    *,
    extra: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body: Dict[str, Any] = {
        "type": "about:blank",
        "title": _title(status_code),
        "status": status_code,
        "detail": detail,
        "instance": request.url.path,
    }
    rid = get_request_id(request)
    if rid:
        body["request_id"] = rid
    if extra:
        body.update(extra)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body),
        media_type="application/problem+json",
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:  # type: ignore[override]
    extra = exc.to_problem() if isinstance(exc, AppException) else None
    return _problem(request, exc.status_code, exc.detail, extra=extra, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # type: ignore[override]
    return _problem(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "Données invalides" if settings.ERROR_LOCALE == "fr" else "Validation error",
        extra={"errors": exc.errors()},
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # type: ignore[override]
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _problem(request, status.HTTP_500_INTERNAL_SERVER_ERROR, generic_error_message())


__all__ = [
    "generic_error_message",
    "http_exception_handler",
    "validation_exception_handler",
    "global_exception_handler",
]
