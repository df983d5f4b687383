"""标签API路由"""
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.common import BulkActionRequest, BulkActionResponse, MessageResponse
from ..schemas.news import NewsListItem
from ..schemas.tag import (
    TagCreate, TagUpdate, TagQuickCreate, TagResponse,
    TagQuickCreateResponse, TagListResponse, TagPopularItem,
)
from ..services.tag_service import tag_service
from ..utils.deps import require_author, require_editor

router = APIRouter(prefix="/tags", tags=["标签"])


# ============ 公开接口 ============

@router.get("", response_model=TagListResponse, summary="标签列表")
async def list_tags(
    db: Annotated[AsyncSession, Depends(get_db)],
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
    search: str | None = None,
    is_active: bool | None = None,
):
    items, total = await tag_service.get_list(db, page, page_size, search=search, is_active=is_active)
    return TagListResponse(
        items=[TagResponse.model_validate(t) for t in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/popular", response_model=list[TagPopularItem], summary="热门标签")
async def get_popular_tags(
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
):
    rows = await tag_service.popular(db, limit)
    return [TagPopularItem(id=t.id, title=t.title, slug=t.slug, news_count=n) for t, n in rows]


@router.get("/{tag_id}/news", response_model=list[NewsListItem], summary="标签下的新闻")
async def get_tag_news(
    tag_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
):
    return await tag_service.published_news(db, tag_id, limit)


# ============ 管理接口 ============

@router.post("", response_model=TagResponse, status_code=201, summary="创建标签")
async def create_tag(
    data: TagCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await tag_service.create(db, data)


@router.post("/quick-create", response_model=TagQuickCreateResponse, summary="快速创建标签")
async def quick_create_tag(
    data: TagQuickCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_author)],
):
    tag, created = await tag_service.quick_create(db, data.title)
    return TagQuickCreateResponse(
        tag=TagResponse.model_validate(tag),
        created=created,
        message="Tag created successfully." if created else "Tag already exists.",
    )


@router.put("/{tag_id}", response_model=TagResponse, summary="更新标签")
async def update_tag(
    tag_id: int,
    data: TagUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await tag_service.update(db, tag_id, data)


@router.delete("/{tag_id}", response_model=MessageResponse, summary="删除标签")
async def delete_tag(
    tag_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    await tag_service.delete(db, tag_id)
    return MessageResponse(message="Tag deleted")


@router.post("/bulk", response_model=BulkActionResponse, summary="批量操作")
async def bulk_tags(
    data: BulkActionRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await tag_service.bulk_action(db, data.action, data.selected)
