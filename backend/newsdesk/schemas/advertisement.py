"""广告相关的Pydantic模式"""
from datetime import datetime
from typing import Any, ClassVar
from pydantic import BaseModel, Field, ConfigDict


class AdvertisementCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    rate: float = Field(default=0.0, ge=0)
    rate_type: str = "fixed"
    media_id: int | None = None
    html_content: str | None = None
    click_url: str | None = Field(None, max_length=500)
    tracking_code: str | None = None
    position: str
    sort_order: int = 0
    display_rules: dict[str, Any] | None = None
    status: str = "active"
    starts_at: datetime | None = None
    expires_at: datetime | None = None


class AdvertisementUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    rate: float | None = Field(None, ge=0)
    rate_type: str | None = None
    media_id: int | None = None
    html_content: str | None = None
    click_url: str | None = Field(None, max_length=500)
    tracking_code: str | None = None
    position: str | None = None
    sort_order: int | None = None
    display_rules: dict[str, Any] | None = None
    status: str | None = None
    starts_at: datetime | None = None
    expires_at: datetime | None = None


class AdvertisementResponse(BaseModel):
    id: int
    title: str
    description: str | None = None
    rate: float
    rate_type: str
    media_id: int | None = None
    html_content: str | None = None
    click_url: str | None = None
    position: str
    sort_order: int
    status: str
    starts_at: datetime | None = None
    expires_at: datetime | None = None
    impressions: int
    clicks: int
    click_rate: float
    is_displayable: bool
    is_scheduled: bool
    days_until_expiry: int | None = None
    created_at: datetime

    model_config: ClassVar[ConfigDict] = ConfigDict(from_attributes=True)


class AdvertisementPublic(BaseModel):
    """前台展示用（不含费率与统计）"""
    id: int
    title: str
    html_content: str | None = None
    click_url: str | None = None
    media_id: int | None = None
    position: str

    model_config: ClassVar[ConfigDict] = ConfigDict(from_attributes=True)


class AdvertisementListResponse(BaseModel):
    items: list[AdvertisementResponse]
    total: int
    page: int
    page_size: int


class AdvertisementPerformance(BaseModel):
    impressions: int
    clicks: int
    click_rate: float
    cost: float
    status: str
    is_displayable: bool


class AdCounterResponse(BaseModel):
    id: int
    impressions: int
    clicks: int
    click_rate: float
