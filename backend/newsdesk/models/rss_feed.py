"""RSS订阅源模型"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, TYPE_CHECKING

from sqlalchemy import Integer, String, Text, DateTime, Boolean, JSON, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..database import Base
from ..utils.timeutil import utcnow

if TYPE_CHECKING:
    from .category import Category


FEED_STATUSES: tuple[str, ...] = ("active", "inactive", "error")


class RssFeed(Base):
    """RSS订阅源表"""
    __tablename__: str = "rss_feeds"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(500), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    website_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    category_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[str] = mapped_column(String(20), default="active", index=True)
    language: Mapped[str] = mapped_column(String(5), default="en", index=True)
    fetch_frequency: Mapped[int] = mapped_column(Integer, default=60)  # 分钟
    max_items: Mapped[int] = mapped_column(Integer, default=10)
    auto_publish: Mapped[bool] = mapped_column(Boolean, default=False)
    parsing_rules: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    last_fetched_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_successful_fetch_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_items_fetched: Mapped[int] = mapped_column(Integer, default=0)
    error_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    category: Mapped[Category | None] = relationship("Category", lazy="selectin")

    __table_args__ = (
        Index("ix_rss_feeds_status_fetched", "status", "last_fetched_at"),
        Index("ix_rss_feeds_category_status", "category_id", "status"),
    )

    @property
    def success_rate(self) -> float:
        total = int(self.total_items_fetched or 0)
        if total == 0:
            return 0.0
        successful = max(0, total - int(self.error_count or 0))
        return round(successful / total * 100, 2)

    @property
    def health_status(self) -> str:
        if self.status == "inactive":
            return "inactive"
        errors = int(self.error_count or 0)
        if errors > 10:
            return "poor"
        if errors > 5:
            return "fair"
        rate = self.success_rate
        if rate > 95:
            return "excellent"
        if rate > 80:
            return "good"
        return "fair"

    @property
    def next_fetch_at(self) -> datetime | None:
        if self.last_fetched_at is None:
            return None
        return self.last_fetched_at + timedelta(minutes=int(self.fetch_frequency or 0))

    def needs_fetching(self, now: datetime | None = None) -> bool:
        if self.status != "active":
            return False
        next_at = self.next_fetch_at
        if next_at is None:
            return True
        return next_at <= (now or utcnow())

    @property
    def is_ready_for_fetch(self) -> bool:
        return self.needs_fetching()
