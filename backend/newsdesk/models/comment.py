"""评论模型"""
from __future__ import annotations

import hashlib
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Integer, String, Text, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..database import Base
from ..utils.timeutil import utcnow

if TYPE_CHECKING:
    from .user import User


COMMENT_STATUSES: tuple[str, ...] = ("pending", "approved", "rejected", "spam")


class Comment(Base):
    """评论表（user_id 与 guest_name/guest_email 二选一）"""
    __tablename__: str = "comments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    news_id: Mapped[int] = mapped_column(Integer, ForeignKey("news.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    parent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True
    )
    guest_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    guest_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False)
    likes_count: Mapped[int] = mapped_column(Integer, default=0)
    replies_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # 关系
    user: Mapped[User | None] = relationship("User", lazy="selectin")

    __table_args__ = (
        Index("ix_comments_news_status_created", "news_id", "status", "created_at"),
        Index("ix_comments_parent_status", "parent_id", "status"),
        Index("ix_comments_user_status", "user_id", "status"),
    )

    @property
    def commenter_name(self) -> str:
        if self.user is not None:
            return self.user.display_name
        return self.guest_name or "Anonymous"

    @property
    def commenter_email(self) -> str | None:
        if self.user is not None:
            return self.user.email
        return self.guest_email

    @property
    def avatar_url(self) -> str:
        if self.user is not None and self.user.avatar:
            return self.user.avatar
        email = (self.commenter_email or "").strip().lower()
        digest = hashlib.md5(email.encode("utf-8")).hexdigest()
        return f"https://www.gravatar.com/avatar/{digest}?d=mp&s=60"

    @property
    def is_guest(self) -> bool:
        return self.user_id is None
