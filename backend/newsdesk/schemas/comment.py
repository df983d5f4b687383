"""评论相关的Pydantic模式"""
from __future__ import annotations

from datetime import datetime
from typing import ClassVar
from pydantic import BaseModel, Field, ConfigDict


class CommentCreate(BaseModel):
    """发表评论（访客需提供昵称与邮箱）"""
    content: str = Field(..., description="3-1000个字符")
    parent_id: int | None = None
    guest_name: str | None = Field(None, max_length=100)
    guest_email: str | None = Field(None, max_length=255)


class CommentUpdate(BaseModel):
    content: str


class CommentResponse(BaseModel):
    id: int
    news_id: int
    parent_id: int | None = None
    user_id: int | None = None
    commenter_name: str
    avatar_url: str
    content: str
    status: str
    is_pinned: bool
    likes_count: int
    replies_count: int
    created_at: datetime

    model_config: ClassVar[ConfigDict] = ConfigDict(from_attributes=True)


class CommentWithReplies(CommentResponse):
    replies: list[CommentResponse] = []


class CommentAdminItem(CommentResponse):
    guest_email: str | None = None
    ip_address: str | None = None
    deleted_at: datetime | None = None


class CommentListResponse(BaseModel):
    items: list[CommentWithReplies]
    total: int


class CommentAdminListResponse(BaseModel):
    items: list[CommentAdminItem]
    total: int
    page: int
    page_size: int


class CommentSubmitResponse(BaseModel):
    comment: CommentResponse
    message: str
