"""
❤️ Yunoa • Favorites, watch history & ratings
=============================================

All routes need a Bearer token; user-scoped paths are owner-or-admin.

Favorites
---------
GET    /favorites/{user_id}
POST   /favorites                      {userId, videoId}
DELETE /favorites/{user_id}/{video_id}

Watch history
-------------
GET  /watch-history/{user_id}          — 50 most recent
POST /watch-history                    {userId, videoId, progress}

Ratings
-------
GET  /ratings/{user_id}/{video_id}     → {rating | null}
POST /ratings                          {userId, videoId, rating 1..5}
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.limiter import rate_limit
from app.core.security import ensure_self_or_admin, get_current_user
from app.db.models.user import User
from app.db.session import get_async_db
from app.schemas.base import SuccessResponse
from app.schemas.engagement import (
    FavoriteCreate,
    FavoriteOut,
    RatingCreate,
    RatingOut,
    WatchHistoryCreate,
    WatchHistoryOut,
)
from app.services import engagement_service

router = APIRouter(tags=["Engagement"])


# ──────────────────────────────────────────────────────────────
# ❤️ Favorites
# ──────────────────────────────────────────────────────────────
@router.get("/favorites/{user_id}", response_model=List[FavoriteOut], summary="User favorites")
async def list_favorites(
    user_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> List[FavoriteOut]:
    ensure_self_or_admin(current_user, user_id)
    return await engagement_service.list_favorites(db, user_id)


@router.post("/favorites", response_model=SuccessResponse, status_code=status.HTTP_201_CREATED, summary="Add a favorite")
async def add_favorite(
    payload: FavoriteCreate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    ensure_self_or_admin(current_user, payload.user_id)
    await engagement_service.add_favorite(db, payload.user_id, payload.video_id)
    return SuccessResponse(message="Ajouté aux favoris")


@router.delete("/favorites/{user_id}/{video_id}", response_model=SuccessResponse, summary="Remove a favorite")
async def remove_favorite(
    user_id: UUID,
    video_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    ensure_self_or_admin(current_user, user_id)
    await engagement_service.remove_favorite(db, user_id, video_id)
    return SuccessResponse(message="Retiré des favoris")


# ──────────────────────────────────────────────────────────────
# 🕘 Watch history
# ──────────────────────────────────────────────────────────────
@router.get("/watch-history/{user_id}", response_model=List[WatchHistoryOut], summary="Recently watched")
async def list_history(
    user_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> List[WatchHistoryOut]:
    ensure_self_or_admin(current_user, user_id)
    return await engagement_service.list_history(db, user_id)


@router.post("/watch-history", response_model=SuccessResponse, summary="Record watch progress")
@rate_limit("120/minute")
async def record_progress(
    request: Request,
    response: Response,
    payload: WatchHistoryCreate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    ensure_self_or_admin(current_user, payload.user_id)
    await engagement_service.record_progress(db, payload.user_id, payload.video_id, payload.progress)
    return SuccessResponse()


# ──────────────────────────────────────────────────────────────
# ⭐ Ratings
# ──────────────────────────────────────────────────────────────
@router.get("/ratings/{user_id}/{video_id}", response_model=RatingOut, summary="A user's rating of a video")
async def get_rating(
    user_id: UUID,
    video_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> RatingOut:
    ensure_self_or_admin(current_user, user_id)
    return RatingOut(rating=await engagement_service.get_rating(db, user_id, video_id))


@router.post("/ratings", response_model=SuccessResponse, summary="Rate a video")
async def rate_video(
    payload: RatingCreate,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    ensure_self_or_admin(current_user, payload.user_id)
    await engagement_service.rate_video(db, payload.user_id, payload.video_id, payload.rating)
    return SuccessResponse(message="Note enregistrée")


__all__ = ["router"]
