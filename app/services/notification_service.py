from __future__ import annotations

"""
In-app notifications
====================
Written by admins (`POST /notifications`) and by the billing flows
(activation, failed payment, renewal reminders); read by the owner.
"""

import logging
from datetime import timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import BadRequestException, NotFoundException
from app.core.security import ensure_self_or_admin
from app.db.models.notification import Notification
from app.db.models.user import User
from app.schemas.engagement import NotificationCreate, NotificationOut
from app.utils.dates import utcnow

logger = logging.getLogger(__name__)


def add_notification(db: AsyncSession, user_id: UUID, title: str, message: str) -> Notification:
    """Stage a notification on `db`; the caller commits."""
    notification = Notification(user_id=user_id, title=title, message=message, is_read=False, created_at=utcnow())
    db.add(notification)
    return notification


async def sent_recently(db: AsyncSession, user_id: UUID, title: str, *, within: timedelta) -> bool:
    """True when `title` was already sent to `user_id` inside the window."""
    stmt = (
        select(Notification.id)
        .where(
            Notification.user_id == user_id,
            Notification.title == title,
            Notification.created_at >= utcnow() - within,
        )
        .limit(1)
    )
    return (await db.execute(stmt)).first() is not None


async def list_notifications(db: AsyncSession, user_id: UUID, *, unread_only: bool = False) -> List[NotificationOut]:
    stmt = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        stmt = stmt.where(Notification.is_read.is_(False))
    rows = (await db.execute(stmt.order_by(Notification.created_at.desc()))).scalars().all()
    return [NotificationOut.model_validate(n) for n in rows]


async def mark_read(db: AsyncSession, notification_id: UUID, *, user: User) -> None:
    notification = (
        await db.execute(select(Notification).where(Notification.id == notification_id))
    ).scalar_one_or_none()
    if notification is None:
        raise NotFoundException("Notification non trouvée")
    ensure_self_or_admin(user, notification.user_id)

    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        await db.commit()


async def mark_all_read(db: AsyncSession, user_id: UUID) -> int:
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True, read_at=utcnow())
    )
    await db.commit()
    return int(result.rowcount or 0)


async def send_notification(db: AsyncSession, payload: NotificationCreate) -> NotificationOut:
    title = (payload.title or "").strip()
    message = (payload.message or "").strip()
    if payload.user_id is None or not title or not message:
        raise BadRequestException("userId, title et message sont requis")

    exists = (await db.execute(select(User.id).where(User.id == payload.user_id))).first()
    if not exists:
        raise NotFoundException("Utilisateur non trouvé")

    notification = add_notification(db, payload.user_id, title, message)
    await db.commit()
    await db.refresh(notification)
    logger.info("Notification sent user=%s title=%s", payload.user_id, title)
    return NotificationOut.model_validate(notification)


__all__ = [
    "add_notification",
    "sent_recently",
    "list_notifications",
    "mark_read",
    "mark_all_read",
    "send_notification",
]
