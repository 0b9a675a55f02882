from __future__ import annotations

"""🏷️ Yunoa — Category (videos reference it by name)."""

from sqlalchemy import CheckConstraint, Column, String, Text

from app.db.base_class import Base, CreatedAtMixin, UUIDPKMixin


class Category(UUIDPKMixin, CreatedAtMixin, Base):
    __tablename__ = "categories"

    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    color = Column(String(32), nullable=True)

    __table_args__ = (CheckConstraint("length(name) > 0", name="name_not_blank"),)
