"""媒体相关的Pydantic模式"""
from datetime import datetime
from typing import ClassVar
from pydantic import BaseModel, Field, ConfigDict


class MediaDimensions(BaseModel):
    width: int = Field(..., ge=0)
    height: int = Field(..., ge=0)


class MediaCreate(BaseModel):
    """登记已上传文件的元数据"""
    file_name: str = Field(..., min_length=1, max_length=255)
    file_path: str = Field(..., min_length=1, max_length=500)
    original_name: str | None = Field(None, max_length=255)
    disk: str = Field(default="public", max_length=50)
    mime_type: str | None = Field(None, max_length=100)
    file_size: int | None = Field(None, ge=0)
    dimensions: MediaDimensions | None = None
    title: str | None = Field(None, max_length=255)
    description: str | None = None
    alt_text: str | None = Field(None, max_length=255)
    is_visible: bool = True


class MediaUpdate(BaseModel):
    title: str | None = Field(None, max_length=255)
    description: str | None = None
    alt_text: str | None = Field(None, max_length=255)
    is_visible: bool | None = None


class MediaResponse(BaseModel):
    id: int
    type: str
    title: str | None = None
    description: str | None = None
    original_name: str | None = None
    file_name: str
    file_path: str
    disk: str
    mime_type: str | None = None
    file_size: int | None = None
    human_file_size: str
    dimensions: dict[str, int] | None = None
    alt_text: str | None = None
    is_visible: bool
    is_web_safe_image: bool
    url: str
    created_at: datetime

    model_config: ClassVar[ConfigDict] = ConfigDict(from_attributes=True)


class MediaListResponse(BaseModel):
    items: list[MediaResponse]
    total: int
    page: int
    page_size: int


class MediaStatistics(BaseModel):
    total: int
    by_type: dict[str, int]
    total_size: int
    total_size_human: str
