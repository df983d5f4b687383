"""新闻相关的Pydantic模式"""
from datetime import datetime
from typing import ClassVar
from pydantic import BaseModel, Field, ConfigDict, field_validator

from ..utils.validators import split_keywords


class NewsCreate(BaseModel):
    """创建新闻"""
    title: str = Field(..., min_length=1, max_length=255, description="标题")
    slug: str | None = Field(None, max_length=255)
    excerpt: str | None = Field(None, description="摘要，留空则由正文生成")
    content: str = Field(default="", description="正文（HTML）")
    language: str = "en"
    status: str = Field(default="draft", description="draft/published/archived")
    published_at: datetime | None = None
    is_featured: bool = False
    allow_comments: bool = True
    category_id: int | None = None
    featured_image_id: int | None = None
    tag_ids: list[int] = []
    meta_title: str | None = Field(None, max_length=255)
    meta_description: str | None = None
    meta_keywords: list[str] | None = None
    source_url: str | None = Field(None, max_length=500)
    source_name: str | None = Field(None, max_length=255)

    @field_validator("meta_keywords", mode="before")
    @classmethod
    def _parse_keywords(cls, value: object):
        if value is None:
            return None
        return split_keywords(value)


class NewsUpdate(BaseModel):
    """更新新闻"""
    title: str | None = Field(None, min_length=1, max_length=255)
    slug: str | None = Field(None, max_length=255)
    excerpt: str | None = None
    content: str | None = None
    language: str | None = None
    status: str | None = None
    published_at: datetime | None = None
    is_featured: bool | None = None
    allow_comments: bool | None = None
    category_id: int | None = None
    featured_image_id: int | None = None
    tag_ids: list[int] | None = None
    meta_title: str | None = Field(None, max_length=255)
    meta_description: str | None = None
    meta_keywords: list[str] | None = None
    source_url: str | None = Field(None, max_length=500)
    source_name: str | None = Field(None, max_length=255)

    @field_validator("meta_keywords", mode="before")
    @classmethod
    def _parse_keywords(cls, value: object):
        if value is None:
            return None
        return split_keywords(value)


class NewsCategoryBrief(BaseModel):
    id: int
    name: str
    slug: str

    model_config: ClassVar[ConfigDict] = ConfigDict(from_attributes=True)


class NewsTagBrief(BaseModel):
    id: int
    title: str
    slug: str

    model_config: ClassVar[ConfigDict] = ConfigDict(from_attributes=True)


class NewsAuthorBrief(BaseModel):
    id: int
    username: str
    display_name: str

    model_config: ClassVar[ConfigDict] = ConfigDict(from_attributes=True)


class NewsListItem(BaseModel):
    """新闻列表项（不含正文）"""
    id: int
    title: str
    slug: str
    excerpt: str | None = None
    status: str
    language: str
    is_featured: bool
    views_count: int
    published_at: datetime | None = None
    created_at: datetime
    category: NewsCategoryBrief | None = None
    author: NewsAuthorBrief | None = None
    source_name: str | None = None

    model_config: ClassVar[ConfigDict] = ConfigDict(from_attributes=True)


class NewsResponse(NewsListItem):
    """新闻详情"""
    content: str
    allow_comments: bool
    category_id: int | None = None
    featured_image_id: int | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    meta_keywords: list[str] | None = None
    source_url: str | None = None
    reading_time: int
    is_published: bool
    tags: list[NewsTagBrief] = []
    updated_at: datetime
    deleted_at: datetime | None = None


class NewsEngagement(BaseModel):
    comments_count: int
    likes_count: int
    dislikes_count: int


class NewsDetailResponse(NewsResponse):
    engagement: NewsEngagement
    user_reaction: str | None = None


class NewsListResponse(BaseModel):
    items: list[NewsListItem]
    total: int
    page: int
    page_size: int


class TrendingNewsItem(NewsListItem):
    window_views: int


class NewsStatsResponse(BaseModel):
    total: int
    published: int
    draft: int
    archived: int
    scheduled: int
    deleted: int
