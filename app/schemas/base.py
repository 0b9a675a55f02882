from __future__ import annotations

"""
Shared pydantic base for API payloads.

The web client speaks camelCase (`videoUrl`, `isDefault`); Python stays
snake_case. Models accept either spelling on input and serialize by alias.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SuccessResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None


__all__ = ["CamelModel", "SuccessResponse"]
