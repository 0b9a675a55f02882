from __future__ import annotations

"""
Admin guards
------------
One place for the admin check so every catalog/billing/admin router applies
the same rule and the same error ("Accès admin requis", 403).

Exports
- is_admin(user): role check
- ensure_admin(user): raise 403 if not admin
- admin_user: FastAPI dependency returning the authenticated admin user
"""

from fastapi import Depends, HTTPException, status

from app.core.security import get_current_user
from app.db.models.user import User
from app.schemas.enums import UserRole


def is_admin(user: User) -> bool:
    return getattr(user, "role", None) == UserRole.ADMIN.value


def ensure_admin(user: User) -> None:
    if not is_admin(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Accès admin requis")


async def admin_user(current_user: User = Depends(get_current_user)) -> User:
    ensure_admin(current_user)
    return current_user


__all__ = ["is_admin", "ensure_admin", "admin_user"]
