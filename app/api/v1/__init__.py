"""Yunoa API v1.

The combined router lives in `app.api.v1.routers`:

    from app.api.v1.routers import router as api_v1_router
"""

__all__: list[str] = []
