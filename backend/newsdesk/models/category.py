"""分类模型"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Integer, String, Text, DateTime, Boolean, JSON, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base
from ..utils.timeutil import utcnow


LANGUAGES: tuple[str, ...] = ("en", "ar", "fr", "es")


class Category(Base):
    """分类表（自引用树，只保存 parent_id，层级通过查询按需展开）"""
    __tablename__: str = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    parent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=True, index=True
    )
    image: Mapped[str | None] = mapped_column(String(255), nullable=True)
    icon: Mapped[str | None] = mapped_column(String(100), nullable=True)
    color: Mapped[str | None] = mapped_column(String(7), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, index=True)
    language: Mapped[str] = mapped_column(String(5), default="en", index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    meta: Mapped[dict[str, object] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_categories_active_lang_sort", "is_active", "language", "sort_order"),
        Index("ix_categories_parent_active", "parent_id", "is_active"),
    )

    @property
    def url(self) -> str:
        return f"/category/{self.slug}"
