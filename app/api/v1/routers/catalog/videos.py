"""
🎬 Yunoa • Videos API
=====================

Public reads
------------
GET  /videos                 — newest first, with `createdByUsername`
GET  /videos/{id}            — detail + subtitles (+ episodes for series)
POST /videos/{id}/views      — +1 view
GET  /top-rated?limit=12     — rated videos, best first
GET  /search?q&category&year&rating

Admin writes
------------
POST   /videos
PUT    /videos/{id}
DELETE /videos/{id}
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.limiter import rate_limit
from app.db.models.user import User
from app.db.session import get_async_db
from app.dependencies.admin import admin_user
from app.schemas.base import SuccessResponse
from app.schemas.catalog import VideoDetail, VideoOut, VideoWrite
from app.services import video_service

router = APIRouter(tags=["Videos"])


# ──────────────────────────────────────────────────────────────
# 📚 Reads
# ──────────────────────────────────────────────────────────────
@router.get("/videos", response_model=List[VideoOut], summary="List videos")
async def list_videos(db: AsyncSession = Depends(get_async_db)) -> List[VideoOut]:
    return await video_service.list_videos(db)


@router.get("/videos/{video_id}", response_model=VideoDetail, summary="Video detail")
async def get_video(video_id: UUID, db: AsyncSession = Depends(get_async_db)) -> VideoDetail:
    return await video_service.get_video_detail(db, video_id)


@router.post("/videos/{video_id}/views", response_model=SuccessResponse, summary="Count a view")
@rate_limit("30/minute")
async def add_view(
    request: Request,
    response: Response,
    video_id: UUID,
    db: AsyncSession = Depends(get_async_db),
) -> SuccessResponse:
    await video_service.increment_views(db, video_id)
    return SuccessResponse()


@router.get("/top-rated", response_model=List[VideoOut], summary="Top rated videos")
async def top_rated(
    limit: int = Query(12, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
) -> List[VideoOut]:
    return await video_service.top_rated(db, limit=limit)


@router.get("/search", response_model=List[VideoOut], summary="Search the catalog")
async def search(
    q: Optional[str] = Query(None, max_length=200),
    category: Optional[str] = Query(None),
    year: Optional[int] = Query(None),
    rating: Optional[float] = Query(None, ge=0, le=5),
    db: AsyncSession = Depends(get_async_db),
) -> List[VideoOut]:
    return await video_service.search_videos(db, q=q, category=category, year=year, rating=rating)


# ──────────────────────────────────────────────────────────────
# 🛠️ Admin writes
# ──────────────────────────────────────────────────────────────
@router.post("/videos", response_model=VideoOut, status_code=status.HTTP_201_CREATED, summary="Create a video")
async def create_video(
    payload: VideoWrite,
    db: AsyncSession = Depends(get_async_db),
    admin: User = Depends(admin_user),
) -> VideoOut:
    return await video_service.create_video(db, payload, creator=admin)


@router.put("/videos/{video_id}", response_model=VideoOut, summary="Update a video")
async def update_video(
    video_id: UUID,
    payload: VideoWrite,
    db: AsyncSession = Depends(get_async_db),
    _admin: User = Depends(admin_user),
) -> VideoOut:
    return await video_service.update_video(db, video_id, payload)


@router.delete("/videos/{video_id}", response_model=SuccessResponse, summary="Delete a video")
async def delete_video(
    video_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    _admin: User = Depends(admin_user),
) -> SuccessResponse:
    await video_service.delete_video(db, video_id)
    return SuccessResponse(message="Vidéo supprimée")


__all__ = ["router"]
