"""媒体文件模型"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Integer, BigInteger, String, Text, DateTime, Boolean, JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base
from ..utils.timeutil import utcnow


MEDIA_EXTENSIONS: dict[str, frozenset[str]] = {
    "image": frozenset({"jpg", "jpeg", "png", "gif", "svg", "webp", "bmp", "tiff"}),
    "video": frozenset({"mp4", "avi", "mov", "wmv", "flv", "webm", "mkv"}),
    "audio": frozenset({"mp3", "wav", "ogg", "aac", "flac", "m4a"}),
    "document": frozenset({"pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "txt", "rtf"}),
}

WEB_SAFE_IMAGE_EXTENSIONS: frozenset[str] = frozenset({"jpg", "jpeg", "png", "gif", "webp"})


def media_type_for(filename: str) -> str:
    """按扩展名判断媒体类型，未知扩展名归为 document"""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    for media_type, extensions in MEDIA_EXTENSIONS.items():
        if ext in extensions:
            return media_type
    return "document"


def human_file_size(size: int | None) -> str:
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(size or 0)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2)} {units[i]}"


class Media(Base):
    """媒体元数据表（文件本体由外部存储负责）"""
    __tablename__: str = "media"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    original_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    disk: Mapped[str] = mapped_column(String(50), default="public")
    mime_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    file_size: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    dimensions: Mapped[dict[str, int] | None] = mapped_column(JSON, nullable=True)
    alt_text: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_media_type_visible", "type", "is_visible"),
    )

    @property
    def extension(self) -> str:
        return self.file_name.rsplit(".", 1)[-1].lower() if "." in self.file_name else ""

    @property
    def url(self) -> str:
        if self.disk == "public":
            return f"/storage/{self.file_path.lstrip('/')}"
        return self.file_path

    @property
    def human_file_size(self) -> str:
        return human_file_size(self.file_size)

    @property
    def is_web_safe_image(self) -> bool:
        return self.type == "image" and self.extension in WEB_SAFE_IMAGE_EXTENSIONS
