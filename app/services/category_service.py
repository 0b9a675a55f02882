from __future__ import annotations

"""
Categories
==========
Videos reference a category by *name* (`videos.category`), so the per-category
`videoCount` is a name join and renaming a category does not re-tag videos.
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictException, NotFoundException
from app.db.models.category import Category
from app.db.models.video import Video
from app.schemas.catalog import CategoryOut, CategoryWrite

logger = logging.getLogger(__name__)

DUPLICATE_NAME = "Une catégorie avec ce nom existe déjà"


def _category_out(category: Category, count: int = 0) -> CategoryOut:
    out = CategoryOut.model_validate(category)
    out.video_count = int(count or 0)
    return out


async def list_categories(db: AsyncSession) -> List[CategoryOut]:
    stmt = (
        select(Category, func.count(Video.id))
        .outerjoin(Video, Video.category == Category.name)
        .group_by(Category.id)
        .order_by(Category.name.asc())
    )
    return [_category_out(c, n) for c, n in (await db.execute(stmt)).all()]


async def _get_or_404(db: AsyncSession, category_id: UUID) -> Category:
    category = (await db.execute(select(Category).where(Category.id == category_id))).scalar_one_or_none()
    if category is None:
        raise NotFoundException("Catégorie non trouvée")
    return category


async def _name_taken(db: AsyncSession, name: str, *, exclude_id: UUID | None = None) -> bool:
    stmt = select(Category.id).where(Category.name == name)
    if exclude_id is not None:
        stmt = stmt.where(Category.id != exclude_id)
    return (await db.execute(stmt)).first() is not None


async def create_category(db: AsyncSession, payload: CategoryWrite) -> CategoryOut:
    name = payload.name.strip()
    if await _name_taken(db, name):
        raise ConflictException(DUPLICATE_NAME, code="CATEGORY_EXISTS")

    category = Category(name=name, description=payload.description, color=payload.color)
    db.add(category)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictException(DUPLICATE_NAME, code="CATEGORY_EXISTS")
    await db.refresh(category)
    logger.info("Category created id=%s name=%s", category.id, name)
    return _category_out(category)


async def update_category(db: AsyncSession, category_id: UUID, payload: CategoryWrite) -> CategoryOut:
    category = await _get_or_404(db, category_id)
    name = payload.name.strip()
    if await _name_taken(db, name, exclude_id=category_id):
        raise ConflictException(DUPLICATE_NAME, code="CATEGORY_EXISTS")

    category.name = name
    category.description = payload.description
    category.color = payload.color
    await db.commit()
    await db.refresh(category)

    count = (await db.execute(select(func.count(Video.id)).where(Video.category == name))).scalar_one()
    return _category_out(category, count)


async def delete_category(db: AsyncSession, category_id: UUID) -> None:
    category = await _get_or_404(db, category_id)
    await db.delete(category)
    await db.commit()
    logger.info("Category deleted id=%s", category_id)


__all__ = ["list_categories", "create_category", "update_category", "delete_category"]
