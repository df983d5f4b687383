"""RSS API路由"""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.common import BulkActionRequest, BulkActionResponse, MessageResponse
from ..schemas.rss import (
    RssFeedCreate, RssFeedUpdate, RssFeedResponse, RssFeedListResponse,
    RssFetchResponse, RssFetchAllItem, RssTestRequest, RssTestResponse, RssStatistics,
)
from ..services.rss_service import rss_service, EXPORT_DEFAULT_LIMIT
from ..utils.deps import require_admin

router = APIRouter(prefix="/rss", tags=["RSS"])


# ============ 公开接口 ============

@router.get("/feed.xml", summary="站点RSS订阅", response_class=Response)
async def export_feed(
    db: Annotated[AsyncSession, Depends(get_db)],
    category_id: int | None = None,
    limit: int = EXPORT_DEFAULT_LIMIT,
):
    xml = await rss_service.export(db, category_id=category_id, limit=limit)
    return Response(content=xml, media_type="application/rss+xml; charset=utf-8")


# ============ 管理接口 ============

@router.get("/feeds", response_model=RssFeedListResponse, summary="订阅源列表")
async def list_feeds(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
    status: str | None = None,
    keyword: str | None = None,
):
    items, total = await rss_service.get_list(db, page, page_size, status=status, keyword=keyword)
    return RssFeedListResponse(
        items=[RssFeedResponse.model_validate(f) for f in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/statistics", response_model=RssStatistics, summary="订阅源统计")
async def feed_statistics(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    return await rss_service.statistics(db)


@router.post("/test", response_model=RssTestResponse, summary="测试订阅地址")
async def test_feed_url(
    data: RssTestRequest,
    _: Annotated[User, Depends(require_admin)],
):
    return await rss_service.test_url(data.url)


@router.post("/fetch-all", response_model=list[RssFetchAllItem], summary="抓取全部启用的订阅源")
async def fetch_all_feeds(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    return await rss_service.fetch_all(db)


@router.post("/bulk", response_model=BulkActionResponse, summary="批量操作")
async def bulk_feeds(
    data: BulkActionRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    return await rss_service.bulk_action(db, data.action, data.selected)


@router.post("/feeds", response_model=RssFeedResponse, status_code=201, summary="创建订阅源")
async def create_feed(
    data: RssFeedCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    return await rss_service.create(db, data)


@router.get("/feeds/{feed_id}", response_model=RssFeedResponse, summary="订阅源详情")
async def get_feed(
    feed_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    return await rss_service.get(db, feed_id)


@router.put("/feeds/{feed_id}", response_model=RssFeedResponse, summary="更新订阅源")
async def update_feed(
    feed_id: int,
    data: RssFeedUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    return await rss_service.update(db, feed_id, data)


@router.delete("/feeds/{feed_id}", response_model=MessageResponse, summary="删除订阅源")
async def delete_feed(
    feed_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    await rss_service.delete(db, feed_id)
    return MessageResponse(message="Feed deleted")


@router.post("/{feed_id}/fetch", response_model=RssFetchResponse, summary="立即抓取")
async def fetch_feed(
    feed_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    feed = await rss_service.get(db, feed_id)
    result = await rss_service.fetch_one(db, feed)
    return RssFetchResponse(
        feed_id=feed_id,
        items_imported=result.items_imported,
        items_found=result.items_found,
        message=f"Imported {result.items_imported} of {result.items_found} items.",
    )


@router.post("/{feed_id}/duplicate", response_model=RssFeedResponse, status_code=201, summary="复制订阅源")
async def duplicate_feed(
    feed_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    return await rss_service.duplicate(db, feed_id)


@router.post("/{feed_id}/reset-errors", response_model=RssFeedResponse, summary="清除错误计数")
async def reset_feed_errors(
    feed_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    return await rss_service.reset_errors(db, feed_id)
