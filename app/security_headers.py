# app/security_headers.py
from __future__ import annotations

"""
# Yunoa — Security Headers & CORS

## What you get
- **Headers** on every API response: HSTS (when enabled), X-Content-Type-Options,
  X-Frame-Options, Referrer-Policy, Permissions-Policy, a locked-down CSP.
- **Media paths** (`/api/v1/videos/hls/`, `/stream`, `/subtitles/`) get
  `Cross-Origin-Resource-Policy: cross-origin` so the player can pull bytes
  from another origin; everything else stays `same-origin`.
- **CORS installer**: strict allow-list from settings, exposing the range
  headers a byte-range player needs.
- **Cache helper**: `set_sensitive_cache()` for auth/billing responses.

## Quick start
    install_security(app)   # HTTPS redirect (optional) + headers middleware
    configure_cors(app)     # CORS allow-list

## Env knobs
- ENABLE_HTTPS_REDIRECT (default "false")
- HSTS_MAX_AGE (0 disables HSTS)
- SECURITY_SKIP_PATHS (CSV; default "/docs,/redoc,/openapi.json")
- FRONTEND_ORIGINS (CSV), ALLOW_ORIGINS_REGEX
- REFERRER_POLICY, PERMISSIONS_POLICY
"""

import os
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple, Union

from fastapi import Request, Response
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.core.config import settings


# ─────────────────────────────────────────────────────────────
# ⚙️ Configuration
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SecurityHeadersConfig:
    hsts_max_age: int = int(os.getenv("HSTS_MAX_AGE", "0"))
    csp: str = os.getenv("API_CSP", "default-src 'none'; frame-ancestors 'none'")
    referrer_policy: str = os.getenv("REFERRER_POLICY", "strict-origin-when-cross-origin")
    permissions_policy: str = os.getenv(
        "PERMISSIONS_POLICY",
        "accelerometer=(), camera=(), geolocation=(), microphone=(), payment=(), usb=()",
    )
    skip_paths_csv: str = os.getenv("SECURITY_SKIP_PATHS", "/docs,/redoc,/openapi.json")
    media_prefixes: Tuple[str, ...] = field(
        default_factory=lambda: (
            f"{settings.API_V1_STR}/videos/hls/",
            "/subtitles/",
        )
    )


_CFG = SecurityHeadersConfig()


def _is_media_path(path: str, cfg: SecurityHeadersConfig) -> bool:
    return path.startswith(cfg.media_prefixes) or path.endswith("/stream")


# ─────────────────────────────────────────────────────────────
# 🧩 Middleware
# ─────────────────────────────────────────────────────────────

class SecurityHeadersMiddleware:
    """Apply security headers idempotently at response start (pure ASGI)."""

    def __init__(self, app: ASGIApp, cfg: SecurityHeadersConfig = _CFG) -> None:
        self.app = app
        self.cfg = cfg
        self._skip_prefixes: Tuple[str, ...] = tuple(
            p.strip() for p in (cfg.skip_paths_csv or "").split(",") if p.strip()
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            return await self.app(scope, receive, send)

        path = scope.get("path", "")
        if path.startswith(self._skip_prefixes):
            return await self.app(scope, receive, send)
        media = _is_media_path(path, self.cfg)

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                raw: List[Tuple[bytes, bytes]] = list(message.get("headers", []))
                _apply_headers(raw, self.cfg, media=media)
                message["headers"] = raw
            await send(message)

        await self.app(scope, receive, send_wrapper)


def _has_header(raw: List[Tuple[bytes, bytes]], name: str) -> bool:
    lname = name.lower().encode("latin-1")
    return any(k.lower() == lname for k, _ in raw)


def _ensure(raw: List[Tuple[bytes, bytes]], name: str, value: str) -> None:
    if not _has_header(raw, name):
        raw.append((name.encode("latin-1"), value.encode("latin-1")))


def _apply_headers(raw: List[Tuple[bytes, bytes]], cfg: SecurityHeadersConfig, *, media: bool) -> None:
    if cfg.hsts_max_age > 0:
        _ensure(raw, "Strict-Transport-Security", f"max-age={cfg.hsts_max_age}; includeSubDomains")
    _ensure(raw, "X-Content-Type-Options", "nosniff")
    _ensure(raw, "X-Frame-Options", "DENY")
    _ensure(raw, "Referrer-Policy", cfg.referrer_policy)
    _ensure(raw, "Permissions-Policy", cfg.permissions_policy)
    _ensure(raw, "Cross-Origin-Resource-Policy", "cross-origin" if media else "same-origin")
    if not media:
        _ensure(raw, "Content-Security-Policy", cfg.csp)


# ─────────────────────────────────────────────────────────────
# 🔓 Public helpers
# ─────────────────────────────────────────────────────────────

def set_sensitive_cache(target: Union[Response, Request], *, seconds: int = 0) -> None:
    """
    Mark a response as sensitive for caching (idempotent).

    `seconds > 0` allows a short **private** cache with `Vary: Authorization`.
    """
    if not isinstance(target, Response):
        raise TypeError("set_sensitive_cache expects a Response")
    if seconds <= 0:
        target.headers.setdefault("Cache-Control", "no-store")
        target.headers.setdefault("Pragma", "no-cache")
        target.headers.setdefault("Expires", "0")
    else:
        target.headers.setdefault("Cache-Control", f"private, max-age={seconds}")
        target.headers.setdefault("Vary", "Authorization")


# ─────────────────────────────────────────────────────────────
# 🌐 CORS installer (allow-list, not '*')
# ─────────────────────────────────────────────────────────────

def configure_cors(
    app,
    *,
    allow_credentials: bool = True,
    allow_methods: Optional[Iterable[str]] = None,
    allow_headers: Optional[Iterable[str]] = None,
) -> None:
    """Install strict CORS from settings (FRONTEND_ORIGINS / BACKEND_CORS_ORIGINS)."""
    allow_methods = allow_methods or ["GET", "HEAD", "OPTIONS", "POST", "PUT", "DELETE"]
    allow_headers = allow_headers or ["Authorization", "Content-Type", "Range", "X-Request-ID", "Stripe-Signature"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.frontend_origins_list,
        allow_origin_regex=settings.ALLOW_ORIGINS_REGEX or None,
        allow_credentials=allow_credentials,
        allow_methods=list(allow_methods),
        allow_headers=list(allow_headers),
        expose_headers=["Accept-Ranges", "Content-Length", "Content-Range", "Retry-After", "X-Request-ID"],
        max_age=3600,
    )


# ─────────────────────────────────────────────────────────────
# 🔐 HTTPS redirect + headers middleware
# ─────────────────────────────────────────────────────────────

def install_security(app) -> None:
    """Add HTTPS redirect (when enabled) and the security headers middleware."""
    if settings.ENABLE_HTTPS_REDIRECT:
        app.add_middleware(HTTPSRedirectMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, cfg=_CFG)


__all__ = [
    "SecurityHeadersConfig",
    "SecurityHeadersMiddleware",
    "install_security",
    "configure_cors",
    "set_sensitive_cache",
]
