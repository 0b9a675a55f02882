"""
👥 Yunoa • Users & statistics API
=================================

Admin
-----
GET    /users            — newest first, with favorite / watched counts
PUT    /users/{id}       — {username, email, role}
DELETE /users/{id}
GET    /stats            — platform dashboard

Owner or admin
--------------
GET /users/{id}/stats
GET /users/{id}/activity?limit=10
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import ensure_self_or_admin, get_current_user
from app.db.models.user import User
from app.db.session import get_async_db
from app.dependencies.admin import admin_user
from app.schemas.base import SuccessResponse
from app.schemas.user import ActivityItem, PlatformStats, UserAdminOut, UserStats, UserUpdate
from app.services import user_service

router = APIRouter(tags=["Users"])


# ──────────────────────────────────────────────────────────────
# 🛡️ Admin management
# ──────────────────────────────────────────────────────────────
@router.get("/users", response_model=List[UserAdminOut], summary="List users")
async def list_users(
    db: AsyncSession = Depends(get_async_db),
    _admin: User = Depends(admin_user),
) -> List[UserAdminOut]:
    return await user_service.list_users(db)


@router.put("/users/{user_id}", response_model=UserAdminOut, summary="Update a user")
async def update_user(
    user_id: UUID,
    payload: UserUpdate,
    db: AsyncSession = Depends(get_async_db),
    _admin: User = Depends(admin_user),
) -> UserAdminOut:
    return await user_service.update_user(db, user_id, payload)


@router.delete("/users/{user_id}", response_model=SuccessResponse, summary="Delete a user")
async def delete_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    _admin: User = Depends(admin_user),
) -> SuccessResponse:
    await user_service.delete_user(db, user_id)
    return SuccessResponse(message="Utilisateur supprimé")


@router.get("/stats", response_model=PlatformStats, summary="Platform statistics")
async def platform_stats(
    db: AsyncSession = Depends(get_async_db),
    _admin: User = Depends(admin_user),
) -> PlatformStats:
    return await user_service.platform_stats(db)


# ──────────────────────────────────────────────────────────────
# 📊 Per-user stats
# ──────────────────────────────────────────────────────────────
@router.get("/users/{user_id}/stats", response_model=UserStats, summary="Viewing statistics")
async def user_stats(
    user_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> UserStats:
    ensure_self_or_admin(current_user, user_id)
    return await user_service.user_stats(db, user_id)


@router.get("/users/{user_id}/activity", response_model=List[ActivityItem], summary="Recent activity")
async def user_activity(
    user_id: UUID,
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> List[ActivityItem]:
    ensure_self_or_admin(current_user, user_id)
    return await user_service.user_activity(db, user_id, limit=limit)


__all__ = ["router"]
