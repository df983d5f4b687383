"""新闻模型"""
from __future__ import annotations

import math
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Integer, String, Text, DateTime, Boolean, JSON, ForeignKey, Index, and_
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql.elements import ColumnElement

from ..database import Base
from ..utils.timeutil import utcnow
from .tag import news_tags

if TYPE_CHECKING:
    from .user import User
    from .category import Category
    from .media import Media
    from .tag import Tag


NEWS_STATUSES: tuple[str, ...] = ("draft", "published", "archived")


class News(Base):
    """新闻表"""
    __tablename__: str = "news"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    excerpt: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    language: Mapped[str] = mapped_column(String(5), default="en", index=True)
    status: Mapped[str] = mapped_column(String(20), default="draft", index=True)  # draft/published/archived
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    allow_comments: Mapped[bool] = mapped_column(Boolean, default=True)
    author_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    category_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    featured_image_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("media.id", ondelete="SET NULL"), nullable=True
    )
    views_count: Mapped[int] = mapped_column(Integer, default=0)
    meta_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    meta_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta_keywords: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    source_url: Mapped[str | None] = mapped_column(String(500), unique=True, nullable=True, index=True)
    source_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    # 关系
    author: Mapped[User | None] = relationship("User", lazy="selectin")
    category: Mapped[Category | None] = relationship("Category", lazy="selectin")
    featured_image: Mapped[Media | None] = relationship("Media", lazy="selectin")
    tags: Mapped[list[Tag]] = relationship("Tag", secondary=news_tags, lazy="selectin", order_by="Tag.title")

    __table_args__ = (
        Index("ix_news_status_published_at", "status", "published_at"),
        Index("ix_news_category_status", "category_id", "status"),
    )

    @classmethod
    def effectively_published(cls, now: datetime | None = None) -> ColumnElement[bool]:
        """公开可见：状态为 published、发布时间不晚于当前、未被软删除"""
        current = now or utcnow()
        return and_(
            cls.status == "published",
            cls.published_at.is_not(None),
            cls.published_at <= current,
            cls.deleted_at.is_(None),
        )

    @property
    def is_published(self) -> bool:
        return (
            self.status == "published"
            and self.published_at is not None
            and self.published_at <= utcnow()
            and self.deleted_at is None
        )

    @property
    def allows_comments(self) -> bool:
        return bool(self.allow_comments) and self.is_published

    @property
    def reading_time(self) -> int:
        """阅读时长（分钟），按每分钟200词估算"""
        from ..utils.validators import strip_tags

        words = len(strip_tags(self.content).split())
        return max(1, math.ceil(words / 200))

    @property
    def url(self) -> str:
        return f"/news/{self.slug}"


class NewsView(Base):
    """新闻浏览记录（只追加的分析事件）"""
    __tablename__: str = "news_views"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    news_id: Mapped[int] = mapped_column(Integer, ForeignKey("news.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    referer: Mapped[str | None] = mapped_column(String(500), nullable=True)
    device_info: Mapped[dict[str, str] | None] = mapped_column(JSON, nullable=True)
    viewed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)

    __table_args__ = (
        Index("ix_news_views_news_viewed", "news_id", "viewed_at"),
        Index("ix_news_views_ip_news", "ip_address", "news_id"),
        Index("ix_news_views_user_viewed", "user_id", "viewed_at"),
    )
