# app/utils/email_utils.py

from __future__ import annotations

"""
Email Utilities for Yunoa
=========================

Transactional email over SMTP through **FastAPI-Mail** (async), with bodies
rendered from plain-text **Jinja2** templates in `EMAIL_TEMPLATE_DIR`.

Highlights
----------
- Config comes from `app.core.config.settings` (SMTP_*, EMAIL_FROM*).
- Dry-run: outside production, or without `SMTP_HOST`, messages are logged
  instead of sent (`EMAIL_FORCE_SEND=1` sends from dev).
- Background-safe: senders **log** failures and return False, they never raise.

Public API
----------
- await send_plain_email(to_email, subject, body) -> bool
- render_text_template(name, **context) -> str
"""

import logging
import os
from pathlib import Path
from typing import Optional

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound

from app.core.config import settings

logger = logging.getLogger(__name__)

_TEMPLATE_DIR = Path(settings.EMAIL_TEMPLATE_DIR)
if not _TEMPLATE_DIR.is_absolute():
    _TEMPLATE_DIR = Path(__file__).resolve().parents[2] / _TEMPLATE_DIR

_fastmail: Optional[FastMail] = None
_jinja_env: Optional[Environment] = None


# ──────────────────────────────────────────────────────────────────────────────
# 🧰 Jinja environment (plain text templates)
# ──────────────────────────────────────────────────────────────────────────────

def _jinja() -> Environment:
    global _jinja_env
    if _jinja_env is None:
        _jinja_env = Environment(
            loader=FileSystemLoader(str(_TEMPLATE_DIR)),
            autoescape=False,
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
    return _jinja_env


def render_text_template(template_name: str, **context) -> str:
    """Render `template_name` from the email template folder (raises if missing)."""
    try:
        return _jinja().get_template(template_name).render(product=settings.EMAIL_FROM_NAME, **context)
    except TemplateNotFound:
        logger.error("Email template not found: %s (dir=%s)", template_name, _TEMPLATE_DIR)
        raise


# ──────────────────────────────────────────────────────────────────────────────
# 📮 FastAPI-Mail configuration
# ──────────────────────────────────────────────────────────────────────────────

def _conn_config() -> ConnectionConfig:
    use_ssl = settings.SMTP_PORT == 465
    return ConnectionConfig(
        MAIL_USERNAME=settings.SMTP_USERNAME or "",
        MAIL_PASSWORD=settings.SMTP_PASSWORD.get_secret_value() if settings.SMTP_PASSWORD else "",
        MAIL_FROM=settings.EMAIL_FROM or "no-reply@yunoa.xyz",
        MAIL_FROM_NAME=settings.EMAIL_FROM_NAME,
        MAIL_PORT=settings.SMTP_PORT,
        MAIL_SERVER=settings.SMTP_HOST or "localhost",
        MAIL_STARTTLS=not use_ssl,
        MAIL_SSL_TLS=use_ssl,
        USE_CREDENTIALS=bool(settings.SMTP_USERNAME and settings.SMTP_PASSWORD),
    )


def _fastmail_client() -> FastMail:
    """Lazily instantiate and cache the FastMail client."""
    global _fastmail
    if _fastmail is None:
        _fastmail = FastMail(_conn_config())
    return _fastmail


# ──────────────────────────────────────────────────────────────────────────────
# 🧭 Behavior toggles & utilities
# ──────────────────────────────────────────────────────────────────────────────

def _should_send_real_email() -> bool:
    if not settings.SMTP_HOST:
        return False
    if settings.is_production:
        return True
    return os.getenv("EMAIL_FORCE_SEND", "0").lower() in {"1", "true", "yes"}


def _mailto(to_email: str) -> str:
    addr = (to_email or "").strip()
    if not addr or "@" not in addr:
        raise ValueError("Invalid recipient email")
    return addr


# ──────────────────────────────────────────────────────────────────────────────
# ✉️  Sender
# ──────────────────────────────────────────────────────────────────────────────

async def send_plain_email(to_email: str, subject: str, body: str) -> bool:
    """
    Send a **plain text** email via FastAPI-Mail.

    Returns True when the message was handed to SMTP (or dry-run logged),
    False when sending failed. Never raises.
    """
    try:
        recipient = _mailto(to_email)
    except ValueError:
        logger.warning("Refusing to email malformed address %r", to_email)
        return False

    if not _should_send_real_email():
        logger.info("📨 [DRY-RUN] Email to=%s subject=%s\n%s", recipient, subject, body)
        return True

    message = MessageSchema(
        subject=subject,
        recipients=[recipient],
        body=body or "",
        subtype=MessageType.plain,
    )
    try:
        await _fastmail_client().send_message(message)
        logger.info("📨 Email sent to %s (subject=%s)", recipient, subject)
        return True
    except Exception:  # noqa: BLE001  SMTP errors never reach callers
        logger.exception("❌ FastMail send failed (to=%s subject=%s) [non-fatal]", recipient, subject)
        return False


__all__ = ["send_plain_email", "render_text_template"]
