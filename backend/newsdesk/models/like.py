"""点赞/点踩模型"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Integer, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base
from ..utils.timeutil import utcnow


REACTION_TYPES: tuple[str, ...] = ("like", "dislike")


class Like(Base):
    """新闻反应表，每个 (news, 身份) 至多一行"""
    __tablename__: str = "likes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    news_id: Mapped[int] = mapped_column(Integer, ForeignKey("news.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    visitor_ip: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    type: Mapped[str] = mapped_column(String(10), default="like")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("news_id", "user_id", name="uq_likes_news_user"),
        UniqueConstraint("news_id", "visitor_ip", name="uq_likes_news_ip"),
        CheckConstraint(
            "(user_id IS NOT NULL AND visitor_ip IS NULL) OR (user_id IS NULL AND visitor_ip IS NOT NULL)",
            name="ck_likes_single_identity",
        ),
        Index("ix_likes_news_type", "news_id", "type"),
    )
