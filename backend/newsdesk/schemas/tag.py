"""标签相关的Pydantic模式"""
from datetime import datetime
from typing import ClassVar
from pydantic import BaseModel, Field, ConfigDict


class TagCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    slug: str | None = Field(None, max_length=255)
    description: str | None = None
    is_active: bool = True


class TagUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    slug: str | None = Field(None, max_length=255)
    description: str | None = None
    is_active: bool | None = None


class TagQuickCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)


class TagResponse(BaseModel):
    id: int
    title: str
    slug: str
    description: str | None = None
    is_active: bool
    created_at: datetime

    model_config: ClassVar[ConfigDict] = ConfigDict(from_attributes=True)


class TagQuickCreateResponse(BaseModel):
    tag: TagResponse
    created: bool
    message: str


class TagListResponse(BaseModel):
    items: list[TagResponse]
    total: int
    page: int
    page_size: int


class TagPopularItem(BaseModel):
    id: int
    title: str
    slug: str
    news_count: int
