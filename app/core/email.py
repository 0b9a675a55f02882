# app/core/email.py
from __future__ import annotations

"""
Yunoa — Email façade
====================

Domain-level senders used by the auth flows. Bodies come from the plain-text
templates in `app/templates/emails`; transport and dry-run behavior live in
`app.utils.email_utils`. Both senders return a bool and never raise, so a mail
outage never fails the HTTP request that triggered it.
"""

import logging

from app.core.config import settings
from app.utils.email_utils import render_text_template, send_plain_email

logger = logging.getLogger(__name__)


async def send_verification_code_email(email: str, code: str) -> bool:
    body = render_text_template(
        "verification_code.txt",
        code=code,
        ttl_minutes=settings.EMAIL_CODE_TTL_MINUTES,
    )
    return await send_plain_email(email, f"Votre code de vérification {settings.EMAIL_FROM_NAME}", body)


async def send_password_reset_email(email: str, username: str, reset_link: str) -> bool:
    body = render_text_template(
        "password_reset.txt",
        username=username,
        reset_link=reset_link,
        ttl_minutes=settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES,
    )
    return await send_plain_email(email, f"Réinitialisation de votre mot de passe {settings.EMAIL_FROM_NAME}", body)


__all__ = ["send_verification_code_email", "send_password_reset_email"]
