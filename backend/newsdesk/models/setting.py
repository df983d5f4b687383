"""站点设置模型"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Integer, String, Text, DateTime, Boolean, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base
from ..utils.timeutil import utcnow


class Setting(Base):
    """键值配置表，value 按 type 编码后以 JSON 保存"""
    __tablename__: str = "settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=True)
    type: Mapped[str] = mapped_column(String(20), default="string")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    group: Mapped[str] = mapped_column(String(50), default="general", index=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False)
    is_autoload: Mapped[bool] = mapped_column(Boolean, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_settings_group_sort", "group", "sort_order"),
    )
