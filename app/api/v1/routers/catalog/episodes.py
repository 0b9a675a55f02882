"""
📺 Yunoa • Episodes API
=======================

GET    /videos/{series_id}/episodes  — season/episode order
GET    /episodes/{id}
POST   /videos/{series_id}/episodes  — admin; 409 `EPISODE_EXISTS` on a taken slot
PUT    /episodes/{id}                — admin
DELETE /episodes/{id}                — admin
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.user import User
from app.db.session import get_async_db
from app.dependencies.admin import admin_user
from app.schemas.base import SuccessResponse
from app.schemas.catalog import EpisodeCreate, EpisodeOut, EpisodeUpdate
from app.services import video_service

router = APIRouter(tags=["Episodes"])


@router.get("/videos/{series_id}/episodes", response_model=List[EpisodeOut], summary="Episodes of a series")
async def list_episodes(series_id: UUID, db: AsyncSession = Depends(get_async_db)) -> List[EpisodeOut]:
    return await video_service.list_episodes(db, series_id)


@router.get("/episodes/{episode_id}", response_model=EpisodeOut, summary="Episode detail")
async def get_episode(episode_id: UUID, db: AsyncSession = Depends(get_async_db)) -> EpisodeOut:
    return await video_service.get_episode(db, episode_id)


@router.post(
    "/videos/{series_id}/episodes",
    response_model=EpisodeOut,
    status_code=status.HTTP_201_CREATED,
    summary="Add an episode",
)
async def create_episode(
    series_id: UUID,
    payload: EpisodeCreate,
    db: AsyncSession = Depends(get_async_db),
    _admin: User = Depends(admin_user),
) -> EpisodeOut:
    return await video_service.create_episode(db, series_id, payload)


@router.put("/episodes/{episode_id}", response_model=EpisodeOut, summary="Update an episode")
async def update_episode(
    episode_id: UUID,
    payload: EpisodeUpdate,
    db: AsyncSession = Depends(get_async_db),
    _admin: User = Depends(admin_user),
) -> EpisodeOut:
    return await video_service.update_episode(db, episode_id, payload)


@router.delete("/episodes/{episode_id}", response_model=SuccessResponse, summary="Delete an episode")
async def delete_episode(
    episode_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    _admin: User = Depends(admin_user),
) -> SuccessResponse:
    await video_service.delete_episode(db, episode_id)
    return SuccessResponse(message="Épisode supprimé")


__all__ = ["router"]
