from __future__ import annotations

"""
Subtitle uploads
================

`.srt` files are written to `SUBTITLES_DIR/<uuid>.srt` and served statically
under `/subtitles/<file>`. Marking an upload as default first clears the flag
on the video's other tracks. Deleting a track removes its file too (a missing
file is not an error).
"""

import logging
import uuid
from pathlib import Path
from typing import Optional
from uuid import UUID

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import AppException, BadRequestException, NotFoundException
from app.db.models.subtitle import Subtitle
from app.schemas.catalog import SubtitleOut
from app.services.video_service import get_video_or_404

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".srt"}
PUBLIC_PREFIX = "/subtitles/"


def subtitles_dir() -> Path:
    return Path(settings.SUBTITLES_DIR)


def parse_bool_flag(value: Optional[str]) -> bool:
    """Multipart booleans arrive as text ("true"/"1"/"on")."""
    return (value or "").strip().lower() in {"true", "1", "yes", "on"}


def _write_file(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def _remove_file(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        logger.info("Subtitle file already gone: %s", path)


async def upload_subtitle(
    db: AsyncSession,
    video_id: UUID,
    *,
    file: Optional[UploadFile],
    language: Optional[str],
    language_name: Optional[str],
    is_default: bool,
) -> SubtitleOut:
    if file is None or not file.filename:
        raise BadRequestException("Fichier de sous-titres requis")
    if Path(file.filename).suffix.lower() not in ALLOWED_EXTENSIONS:
        raise BadRequestException("Seuls les fichiers .srt sont autorisés")
    if not (language or "").strip():
        raise BadRequestException("Langue requise")

    await get_video_or_404(db, video_id)

    data = await file.read()
    if len(data) > settings.SUBTITLE_MAX_BYTES:
        raise AppException(status_code=413, message="Fichier de sous-titres trop volumineux", code="FILE_TOO_LARGE")

    filename = f"{uuid.uuid4()}.srt"
    path = subtitles_dir() / filename
    await run_in_threadpool(_write_file, path, data)

    # the row never points at a missing file, and a failed insert leaves no file behind
    try:
        if is_default:
            await db.execute(update(Subtitle).where(Subtitle.video_id == video_id).values(is_default=False))

        subtitle = Subtitle(
            video_id=video_id,
            language=language.strip(),
            language_name=language_name,
            subtitle_url=f"{PUBLIC_PREFIX}{filename}",
            is_default=is_default,
        )
        db.add(subtitle)
        await db.commit()
    except Exception:
        await db.rollback()
        await run_in_threadpool(_remove_file, path)
        logger.exception("Subtitle insert failed for video=%s; removed %s", video_id, path)
        raise
    await db.refresh(subtitle)
    logger.info("Subtitle uploaded id=%s video=%s lang=%s default=%s", subtitle.id, video_id, subtitle.language, is_default)
    return SubtitleOut.model_validate(subtitle)


async def delete_subtitle(db: AsyncSession, subtitle_id: UUID) -> None:
    subtitle = (await db.execute(select(Subtitle).where(Subtitle.id == subtitle_id))).scalar_one_or_none()
    if subtitle is None:
        raise NotFoundException("Sous-titre non trouvé")

    url = subtitle.subtitle_url or ""
    await db.delete(subtitle)
    await db.commit()

    if url.startswith(PUBLIC_PREFIX):
        await run_in_threadpool(_remove_file, subtitles_dir() / Path(url[len(PUBLIC_PREFIX):]).name)
    logger.info("Subtitle deleted id=%s", subtitle_id)


__all__ = ["parse_bool_flag", "subtitles_dir", "upload_subtitle", "delete_subtitle"]
