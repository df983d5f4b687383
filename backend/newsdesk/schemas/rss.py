"""RSS相关的Pydantic模式"""
from datetime import datetime
from typing import Any, ClassVar
from pydantic import BaseModel, Field, ConfigDict


class RssFeedCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1, max_length=500)
    description: str | None = None
    website_url: str | None = Field(None, max_length=500)
    category_id: int | None = None
    status: str = "active"
    language: str = "en"
    fetch_frequency: int = Field(default=60, ge=1, le=10080, description="分钟")
    max_items: int = Field(default=10, ge=1, le=100)
    auto_publish: bool = False
    parsing_rules: dict[str, Any] | None = None


class RssFeedUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    url: str | None = Field(None, min_length=1, max_length=500)
    description: str | None = None
    website_url: str | None = None
    category_id: int | None = None
    status: str | None = None
    language: str | None = None
    fetch_frequency: int | None = Field(None, ge=1, le=10080)
    max_items: int | None = Field(None, ge=1, le=100)
    auto_publish: bool | None = None
    parsing_rules: dict[str, Any] | None = None


class RssFeedResponse(BaseModel):
    id: int
    name: str
    url: str
    description: str | None = None
    website_url: str | None = None
    category_id: int | None = None
    status: str
    language: str
    fetch_frequency: int
    max_items: int
    auto_publish: bool
    last_fetched_at: datetime | None = None
    last_successful_fetch_at: datetime | None = None
    last_error: str | None = None
    total_items_fetched: int
    error_count: int
    success_rate: float
    health_status: str
    next_fetch_at: datetime | None = None
    created_at: datetime

    model_config: ClassVar[ConfigDict] = ConfigDict(from_attributes=True)


class RssFeedListResponse(BaseModel):
    items: list[RssFeedResponse]
    total: int
    page: int
    page_size: int


class RssFetchResponse(BaseModel):
    feed_id: int
    items_imported: int
    items_found: int
    message: str


class RssFetchAllItem(BaseModel):
    feed_id: int
    name: str
    success: bool
    items_imported: int = 0
    items_found: int = 0
    error: str | None = None


class RssTestRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=500)


class RssTestResponse(BaseModel):
    valid: bool
    type: str | None = None
    title: str | None = None
    description: str | None = None
    link: str | None = None
    items_count: int = 0
    error: str | None = None


class RssStatistics(BaseModel):
    total: int
    active: int
    inactive: int
    error: int
    total_items_fetched: int
