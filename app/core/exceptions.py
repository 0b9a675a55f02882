# app/core/exceptions.py
from __future__ import annotations

"""
Yunoa — Application Exceptions
==============================
A thin layer on top of FastAPI's `HTTPException` that lets routes and services
attach a machine-readable `code` and structured `details`, rendered by
`app.core.exception_handlers` as `application/problem+json`.

Services raise these directly; routes never need to translate them.

Usage
-----
    raise NotFoundException("Vidéo non trouvée")
    raise ConflictException("Cet épisode existe déjà", code="EPISODE_EXISTS")
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

__all__ = [
    "AppException",
    "BadRequestException",
    "NotFoundException",
    "ConflictException",
    "TooManyAttemptsException",
    "UpstreamException",
    "InvalidTokenException",
]


# ──────────────────────────────────────────────────────────────
# 📦 Core: AppException
# ──────────────────────────────────────────────────────────────
class AppException(HTTPException):
    """Base application-level exception.

    Attributes
    -----------
    status_code : int
        HTTP status code.
    message : str
        Human-readable message (also exposed as `detail`).
    code : str | None
        Stable machine code clients can branch on (e.g. ``EPISODE_EXISTS``).
    details : Any
        Extra machine-readable context (ids, available options, ...).
    """

    def __init__(
        self,
        *,
        status_code: int,
        message: str,
        code: Optional[str] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.message = message
        self.code = code
        self.details = details

    def to_problem(self) -> Dict[str, Any]:
        """Extra members merged into the problem+json body."""
        body: Dict[str, Any] = {}
        if self.code:
            body["code"] = self.code
        if self.details is not None:
            body["details"] = self.details
        return body


class BadRequestException(AppException):
    def __init__(self, message: str, *, code: Optional[str] = None, details: Any = None) -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, message=message, code=code, details=details)


class NotFoundException(AppException):
    def __init__(self, message: str = "Ressource non trouvée", *, code: Optional[str] = None, details: Any = None) -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, message=message, code=code, details=details)


class ConflictException(AppException):
    def __init__(self, message: str, *, code: Optional[str] = None, details: Any = None) -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, message=message, code=code, details=details)


class TooManyAttemptsException(AppException):
    """429 raised by the login brute-force guard; carries `Retry-After`."""

    def __init__(self, *, retry_after_seconds: int) -> None:
        minutes = max(1, -(-int(retry_after_seconds) // 60))
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            message=f"Trop de tentatives de connexion. Réessayez dans {minutes} minute(s).",
            code="TOO_MANY_ATTEMPTS",
            details={"retryAfterMinutes": minutes},
            headers={"Retry-After": str(max(1, int(retry_after_seconds)))},
        )


class UpstreamException(AppException):
    """The media origin or billing provider failed in a way the client cannot fix."""

    def __init__(self, message: str = "Service de diffusion indisponible", *, details: Any = None) -> None:
        super().__init__(status_code=status.HTTP_502_BAD_GATEWAY, message=message, code="UPSTREAM_ERROR", details=details)


class InvalidTokenException(AppException):
    """Invalid or expired token (401 + `WWW-Authenticate: Bearer`)."""

    def __init__(self, detail: str = "Token invalide ou expiré", *, code: Optional[str] = None) -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            message=detail,
            code=code,
            headers={"WWW-Authenticate": "Bearer"},
        )
