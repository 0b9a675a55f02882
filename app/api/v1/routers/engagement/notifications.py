"""
🔔 Yunoa • Notifications API
============================

GET  /notifications/{user_id}           — newest first (owner or admin)
GET  /notifications/{user_id}/unread
PUT  /notifications/{id}/read           — owner of the notification or admin
PUT  /notifications/{user_id}/read-all
POST /notifications                     — admin: {userId, title, message}
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import ensure_self_or_admin, get_current_user
from app.db.models.user import User
from app.db.session import get_async_db
from app.dependencies.admin import admin_user
from app.schemas.base import SuccessResponse
from app.schemas.engagement import NotificationCreate, NotificationOut
from app.services import notification_service

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("/{user_id}", response_model=List[NotificationOut], summary="All notifications")
async def list_notifications(
    user_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> List[NotificationOut]:
    ensure_self_or_admin(current_user, user_id)
    return await notification_service.list_notifications(db, user_id)


@router.get("/{user_id}/unread", response_model=List[NotificationOut], summary="Unread notifications")
async def list_unread(
    user_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> List[NotificationOut]:
    ensure_self_or_admin(current_user, user_id)
    return await notification_service.list_notifications(db, user_id, unread_only=True)


@router.put("/{notification_id}/read", response_model=SuccessResponse, summary="Mark one as read")
async def mark_read(
    notification_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    await notification_service.mark_read(db, notification_id, user=current_user)
    return SuccessResponse()


@router.put("/{user_id}/read-all", response_model=SuccessResponse, summary="Mark all as read")
async def mark_all_read(
    user_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    current_user: User = Depends(get_current_user),
) -> SuccessResponse:
    ensure_self_or_admin(current_user, user_id)
    count = await notification_service.mark_all_read(db, user_id)
    return SuccessResponse(message=f"{count} notification(s) marquée(s) comme lue(s)")


@router.post("", response_model=NotificationOut, status_code=status.HTTP_201_CREATED, summary="Send a notification")
async def send_notification(
    payload: NotificationCreate,
    db: AsyncSession = Depends(get_async_db),
    _admin: User = Depends(admin_user),
) -> NotificationOut:
    return await notification_service.send_notification(db, payload)


__all__ = ["router"]
