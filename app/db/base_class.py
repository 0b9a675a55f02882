# app/db/base_class.py
from __future__ import annotations

"""
# Yunoa — SQLAlchemy Base & Mixins

SQLAlchemy 2.0 declarative **Base** with:
- Global **naming conventions** (Alembic-friendly constraint names)
- Automatic **snake_case `__tablename__`** (models may still set it explicitly)
- Compact `__repr__`
- Mixins:
  - `UUIDPKMixin` — portable `Uuid` primary key (native UUID on Postgres, CHAR(32) on SQLite)
  - `CreatedAtMixin` — `created_at` (UTC; python default + server default)

Usage:
    from app.db.base_class import Base, UUIDPKMixin, CreatedAtMixin

    class Category(UUIDPKMixin, CreatedAtMixin, Base):
        __tablename__ = "categories"
        name = Column(String(100), unique=True, nullable=False)
"""

import re
import uuid

from sqlalchemy import Column, DateTime, MetaData, Uuid, func
from sqlalchemy.orm import DeclarativeBase, declared_attr

from app.utils.dates import utcnow

# ──────────────────────────────────────────────────────────────────────────────
# 🏷️ Naming conventions (stable constraint names for Alembic)
# ──────────────────────────────────────────────────────────────────────────────

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _to_snake(name: str) -> str:
    """Convert `CamelCase` / `PascalCase` to `snake_case` for table names."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


# ──────────────────────────────────────────────────────────────────────────────
# 🧱 Declarative Base
# ──────────────────────────────────────────────────────────────────────────────

class Base(DeclarativeBase):
    """Global declarative base for Yunoa models."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    @declared_attr.directive
    def __tablename__(cls) -> str:  # type: ignore[override]
        return _to_snake(cls.__name__)

    def __repr__(self) -> str:  # pragma: no cover
        attrs = [
            f"{key}={getattr(self, key)!r}"
            for key in ("id", "username", "title", "name", "code")
            if key in self.__dict__
        ]
        return f"{self.__class__.__name__}({', '.join(attrs)})"


# ──────────────────────────────────────────────────────────────────────────────
# 🧩 Common mixins
# ──────────────────────────────────────────────────────────────────────────────

class UUIDPKMixin:
    """UUID primary key generated client-side (ids are known before flush)."""
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)


class CreatedAtMixin:
    """`created_at` set once at insert (UTC)."""
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        index=True,
    )


__all__ = ["Base", "UUIDPKMixin", "CreatedAtMixin", "NAMING_CONVENTION"]
