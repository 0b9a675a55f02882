"""
🏷️ Yunoa • Categories API
=========================

GET    /categories       — name order, with `videoCount`
POST   /categories       — admin; 409 `CATEGORY_EXISTS` on a duplicate name
PUT    /categories/{id}  — admin
DELETE /categories/{id}  — admin
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.user import User
from app.db.session import get_async_db
from app.dependencies.admin import admin_user
from app.schemas.base import SuccessResponse
from app.schemas.catalog import CategoryOut, CategoryWrite
from app.services import category_service

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("", response_model=List[CategoryOut], summary="List categories")
async def list_categories(db: AsyncSession = Depends(get_async_db)) -> List[CategoryOut]:
    return await category_service.list_categories(db)


@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED, summary="Create a category")
async def create_category(
    payload: CategoryWrite,
    db: AsyncSession = Depends(get_async_db),
    _admin: User = Depends(admin_user),
) -> CategoryOut:
    return await category_service.create_category(db, payload)


@router.put("/{category_id}", response_model=CategoryOut, summary="Update a category")
async def update_category(
    category_id: UUID,
    payload: CategoryWrite,
    db: AsyncSession = Depends(get_async_db),
    _admin: User = Depends(admin_user),
) -> CategoryOut:
    return await category_service.update_category(db, category_id, payload)


@router.delete("/{category_id}", response_model=SuccessResponse, summary="Delete a category")
async def delete_category(
    category_id: UUID,
    db: AsyncSession = Depends(get_async_db),
    _admin: User = Depends(admin_user),
) -> SuccessResponse:
    await category_service.delete_category(db, category_id)
    return SuccessResponse(message="Catégorie supprimée")


__all__ = ["router"]
