"""
💬 Yunoa • Subtitles API (admin)
================================

POST   /videos/{id}/subtitles  — multipart: `subtitle` (.srt), `language`,
                                 `languageName`, `isDefault`
DELETE /subtitles/{id}         — removes the row and the stored file

Stored files are served statically under `/subtitles` (see `app.main`).
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.user import User
from app.db.session import get_async_db
from app.dependencies.admin import admin_user
from app.schemas.base import SuccessResponse
from app.schemas.catalog import SubtitleOut
from app.services import subtitle_service

router = APIRouter(tags=["Subtitles"])


@router.post(
    "/videos/{video_id}/subtitles",
    response_model=SubtitleOut,
    status_code=status.HTTP_201_CREATED,
    summary="Upload an .srt subtitle",
)
async def upload_subtitle(
    video_id: UUID,
    subtitle: Optional[UploadFile] = File(None),
    language: Optional[str] = Form(None),
    language_name: Optional[str] = Form(None, alias="languageName"),
    is_default: Optional[str] = Form(None, alias="isDefault"),
    db: AsyncSession = Depends(get_async_db),
    _admin: User = Depends(admin_user),
) -> SubtitleOut:
    return await subtitle_service.upload_subtitle(
        db,
        video_id,
        file=subtitle,
        language=language,
        language_name=language_name,
        is_default=subtitle_service.parse_bool_flag(is_default),
    )


@router.delete("/subtitles/{subtitle_id}", response_model=SuccessResponse, summary="Delete a subtitle")
async def delete_subtitle(
    subtitle_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    _admin: User = Depends(admin_user),
) -> SuccessResponse:
    await subtitle_service.delete_subtitle(db, subtitle_id)
    return SuccessResponse(message="Sous-titre supprimé")


__all__ = ["router"]
