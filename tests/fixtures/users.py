from __future__ import annotations

from typing import Awaitable, Callable, Dict, Tuple
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import create_access_token, get_password_hash
from app.db.models.user import User
from app.schemas.enums import UserRole

DEFAULT_PASSWORD = "Password123!"


# ──────────────────────────────────────────────────────────────
# 🧪 Factory: Create Test User
# ──────────────────────────────────────────────────────────────
@pytest.fixture
def create_test_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """
    Create a user; username/email default to unique values.
    """
    async def _create(
        *,
        username: str | None = None,
        email: str | None = None,
        password: str = DEFAULT_PASSWORD,
        role: str = UserRole.USER.value,
    ) -> User:
        suffix = uuid4().hex[:8]
        user = User(
            username=username or f"user_{suffix}",
            email=(email or f"user_{suffix}@example.com").lower(),
            password_hash=get_password_hash(password),
            role=role,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _create


# ──────────────────────────────────────────────────────────────
# 🔑 Users with ready-to-use Authorization headers
# ──────────────────────────────────────────────────────────────
def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def user_with_headers(create_test_user) -> Callable[..., Awaitable[Tuple[User, Dict[str, str]]]]:
    async def _create(**kwargs) -> Tuple[User, Dict[str, str]]:
        user = await create_test_user(**kwargs)
        return user, auth_headers(user)

    return _create


@pytest.fixture
async def admin_with_headers(user_with_headers) -> Tuple[User, Dict[str, str]]:
    return await user_with_headers(username="admin", role=UserRole.ADMIN.value)


@pytest.fixture
async def member_with_headers(user_with_headers) -> Tuple[User, Dict[str, str]]:
    return await user_with_headers(username="member")
