"""
Admin router package (v1)
=========================

Aggregates admin-only endpoints that do not belong to a public resource
(catalog writes stay next to their reads and are guarded by `admin_user`).

Mount with a base path in your app:
    router.include_router(admin_router, prefix="/admin")

We add common 401/403/429 response docs at include-time for a uniform OpenAPI.
"""

from typing import Any, Dict

from fastapi import APIRouter, status

from .subscriptions import router as subscriptions_router


COMMON_ADMIN_RESPONSES: Dict[int, Dict[str, Any]] = {
    status.HTTP_401_UNAUTHORIZED: {"description": "Unauthorized"},
    status.HTTP_403_FORBIDDEN: {"description": "Accès admin requis"},
    status.HTTP_429_TOO_MANY_REQUESTS: {"description": "Rate limit exceeded"},
}

router = APIRouter()  # callers mount with prefix="/admin"
router.include_router(subscriptions_router, responses=COMMON_ADMIN_RESPONSES)


__all__ = ["router", "subscriptions_router", "COMMON_ADMIN_RESPONSES"]
