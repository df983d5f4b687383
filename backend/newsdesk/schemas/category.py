"""分类相关的Pydantic模式"""
from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar
from pydantic import BaseModel, Field, ConfigDict


class CategoryCreate(BaseModel):
    """创建分类"""
    name: str = Field(..., min_length=1, max_length=255)
    slug: str | None = Field(None, max_length=255)
    description: str | None = None
    parent_id: int | None = None
    image: str | None = Field(None, max_length=255)
    icon: str | None = Field(None, max_length=100)
    color: str | None = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    sort_order: int = 0
    language: str = "en"
    is_active: bool = True
    meta: dict[str, Any] | None = None


class CategoryUpdate(BaseModel):
    """更新分类"""
    name: str | None = Field(None, min_length=1, max_length=255)
    slug: str | None = Field(None, max_length=255)
    description: str | None = None
    parent_id: int | None = None
    image: str | None = None
    icon: str | None = None
    color: str | None = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    sort_order: int | None = None
    language: str | None = None
    is_active: bool | None = None
    meta: dict[str, Any] | None = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: str | None = None
    parent_id: int | None = None
    image: str | None = None
    icon: str | None = None
    color: str | None = None
    sort_order: int
    language: str
    is_active: bool
    meta: dict[str, Any] | None = None
    url: str
    created_at: datetime
    updated_at: datetime

    model_config: ClassVar[ConfigDict] = ConfigDict(from_attributes=True)


class CategoryListResponse(BaseModel):
    items: list[CategoryResponse]
    total: int
    page: int
    page_size: int


class CategoryTreeNode(BaseModel):
    id: int
    name: str
    slug: str
    sort_order: int
    children: list[CategoryTreeNode] = []


class BreadcrumbItem(BaseModel):
    id: int
    name: str
    slug: str
    url: str


class CategoryDetailResponse(CategoryResponse):
    breadcrumb: list[BreadcrumbItem] = []
    total_news_count: int = 0


class CategoryPopularItem(BaseModel):
    id: int
    name: str
    slug: str
    news_count: int
