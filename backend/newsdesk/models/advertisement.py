"""广告模型"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Any, TYPE_CHECKING

from sqlalchemy import Integer, BigInteger, String, Text, DateTime, Float, JSON, ForeignKey, Index, and_, or_, event
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql.elements import ColumnElement

from ..database import Base
from ..utils.timeutil import utcnow, to_naive_utc

if TYPE_CHECKING:
    from .media import Media


AD_POSITIONS: tuple[str, ...] = (
    "header", "sidebar", "footer", "content_top", "content_middle", "content_bottom", "popup", "banner",
)
AD_STATUSES: tuple[str, ...] = ("active", "inactive", "expired")
AD_RATE_TYPES: tuple[str, ...] = ("cpm", "cpc", "fixed")


class Advertisement(Base):
    """广告表"""
    __tablename__: str = "advertisements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    rate: Mapped[float] = mapped_column(Float, default=0.0)
    rate_type: Mapped[str] = mapped_column(String(10), default="fixed")
    media_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("media.id", ondelete="SET NULL"), nullable=True)
    html_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    click_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    tracking_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    position: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    display_rules: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="active", index=True)
    starts_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    impressions: Mapped[int] = mapped_column(BigInteger, default=0)
    clicks: Mapped[int] = mapped_column(BigInteger, default=0)
    click_rate: Mapped[float] = mapped_column(Float, default=0.0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    media: Mapped[Media | None] = relationship("Media", lazy="selectin")

    __table_args__ = (
        Index("ix_ads_position_status", "position", "status"),
        Index("ix_ads_schedule", "starts_at", "expires_at"),
    )

    @classmethod
    def displayable(cls, now: datetime | None = None) -> ColumnElement[bool]:
        current = now or utcnow()
        return and_(
            cls.status == "active",
            or_(cls.starts_at.is_(None), cls.starts_at <= current),
            or_(cls.expires_at.is_(None), cls.expires_at > current),
        )

    @property
    def is_displayable(self) -> bool:
        now = utcnow()
        if self.status != "active":
            return False
        starts_at = to_naive_utc(self.starts_at)
        expires_at = to_naive_utc(self.expires_at)
        if starts_at is not None and starts_at > now:
            return False
        if expires_at is not None and expires_at <= now:
            return False
        return True

    @property
    def is_expired(self) -> bool:
        expires_at = to_naive_utc(self.expires_at)
        return expires_at is not None and expires_at < utcnow()

    @property
    def is_scheduled(self) -> bool:
        starts_at = to_naive_utc(self.starts_at)
        return starts_at is not None and starts_at > utcnow()

    @property
    def days_until_expiry(self) -> int | None:
        expires_at = to_naive_utc(self.expires_at)
        if expires_at is None:
            return None
        seconds = (expires_at - utcnow()).total_seconds()
        return max(0, math.ceil(seconds / 86400))

    def calculate_cost(self) -> float:
        rate = float(self.rate or 0)
        if self.rate_type == "cpm":
            return round(int(self.impressions or 0) / 1000 * rate, 2)
        if self.rate_type == "cpc":
            return round(int(self.clicks or 0) * rate, 2)
        return rate

    def refresh_click_rate(self) -> None:
        impressions = int(self.impressions or 0)
        if impressions > 0:
            self.click_rate = round(int(self.clicks or 0) / impressions * 100, 2)


@event.listens_for(Advertisement, "before_insert")
@event.listens_for(Advertisement, "before_update")
def _expire_on_save(mapper, connection, target: Advertisement) -> None:
    """保存时若已过期，无论传入何种状态都强制为 expired"""
    _ = (mapper, connection)
    target.starts_at = to_naive_utc(target.starts_at)
    target.expires_at = to_naive_utc(target.expires_at)
    if target.is_expired:
        target.status = "expired"
