"""新闻API路由"""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..exceptions import PermissionDeniedError
from ..models.news import News
from ..models.user import User
from ..schemas.common import BulkActionRequest, BulkActionResponse, MessageResponse
from ..schemas.news import (
    NewsCreate, NewsUpdate, NewsListItem, NewsResponse, NewsDetailResponse,
    NewsEngagement, NewsListResponse, TrendingNewsItem, NewsStatsResponse,
)
from ..services.like_service import like_service
from ..services.news_service import news_service
from ..services.view_service import view_service
from ..utils.deps import get_client_ip, get_current_user_optional, require_author, require_editor
from ..utils.identity import identity_for
from ..utils.permissions import is_owner_or_privileged

router = APIRouter(prefix="/news", tags=["新闻"])


def _list_response(items: list[News], total: int, page: int, page_size: int) -> NewsListResponse:
    return NewsListResponse(
        items=[NewsListItem.model_validate(n) for n in items],
        total=total,
        page=page,
        page_size=page_size,
    )


async def _owned_news(db: AsyncSession, news_id: int, user: User, include_deleted: bool = False) -> News:
    news = await news_service.get(db, news_id, include_deleted=include_deleted)
    if not is_owner_or_privileged(user, news.author_id):
        raise PermissionDeniedError("You are not allowed to modify this article.")
    return news


# ============ 公开接口 ============

@router.get("", response_model=NewsListResponse, summary="新闻列表")
async def list_news(
    db: Annotated[AsyncSession, Depends(get_db)],
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int | None, Query(ge=1, le=100)] = None,
    category_id: int | None = None,
    tag: str | None = None,
    author_id: int | None = None,
    keyword: str | None = None,
    featured: bool | None = None,
):
    items, total, size = await news_service.get_published_list(
        db,
        page=page,
        page_size=page_size,
        category_id=category_id,
        tag_slug=tag,
        author_id=author_id,
        keyword=keyword,
        featured=featured,
    )
    return _list_response(items, total, page, size)


@router.get("/search", response_model=NewsListResponse, summary="搜索新闻")
async def search_news(
    db: Annotated[AsyncSession, Depends(get_db)],
    q: Annotated[str, Query(description="2-255个字符")],
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int | None, Query(ge=1, le=100)] = None,
):
    items, total, size = await news_service.search(db, q, page=page, page_size=page_size)
    return _list_response(items, total, page, size)


@router.get("/trending", response_model=list[TrendingNewsItem], summary="热门新闻")
async def trending_news(
    db: Annotated[AsyncSession, Depends(get_db)],
    days: Annotated[int, Query(ge=1, le=365)] = 7,
    limit: Annotated[int, Query(ge=1, le=50)] = 10,
):
    rows = await news_service.trending(db, days=days, limit=limit)
    return [
        TrendingNewsItem(**NewsListItem.model_validate(news).model_dump(), window_views=views)
        for news, views in rows
    ]


@router.get("/featured", response_model=list[NewsListItem], summary="推荐新闻")
async def featured_news(
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: Annotated[int, Query(ge=1, le=50)] = 5,
):
    return await news_service.featured(db, limit=limit)


# ============ 管理接口 ============

@router.get("/admin", response_model=NewsListResponse, summary="管理端新闻列表")
async def admin_list_news(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
    status: str | None = None,
    category_id: int | None = None,
    keyword: str | None = None,
    featured: bool | None = None,
    trashed: bool = False,
):
    items, total = await news_service.get_admin_list(
        db,
        page=page,
        page_size=page_size,
        status=status,
        category_id=category_id,
        keyword=keyword,
        featured=featured,
        trashed=trashed,
    )
    return _list_response(items, total, page, page_size)


@router.get("/admin/stats", response_model=NewsStatsResponse, summary="新闻统计")
async def admin_news_stats(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await news_service.stats(db)


@router.get("/admin/{news_id}", response_model=NewsResponse, summary="管理端新闻详情")
async def admin_get_news(
    news_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_author)],
):
    return await _owned_news(db, news_id, current_user, include_deleted=True)


@router.post("", response_model=NewsResponse, status_code=201, summary="创建新闻")
async def create_news(
    data: NewsCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_author)],
):
    return await news_service.create(db, data, author_id=current_user.id)


@router.put("/{news_id}", response_model=NewsResponse, summary="更新新闻")
async def update_news(
    news_id: int,
    data: NewsUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_author)],
):
    _ = await _owned_news(db, news_id, current_user)
    return await news_service.update(db, news_id, data)


@router.delete("/{news_id}", response_model=MessageResponse, summary="删除新闻（移入回收站）")
async def delete_news(
    news_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_author)],
):
    _ = await _owned_news(db, news_id, current_user)
    await news_service.soft_delete(db, news_id)
    return MessageResponse(message="News moved to trash")


@router.post("/{news_id}/restore", response_model=NewsResponse, summary="恢复新闻")
async def restore_news(
    news_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await news_service.restore(db, news_id)


@router.post("/{news_id}/publish", response_model=NewsResponse, summary="发布")
async def publish_news(
    news_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await news_service.publish(db, news_id)


@router.post("/{news_id}/archive", response_model=NewsResponse, summary="归档")
async def archive_news(
    news_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await news_service.archive(db, news_id)


@router.post("/{news_id}/draft", response_model=NewsResponse, summary="转为草稿")
async def draft_news(
    news_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await news_service.make_draft(db, news_id)


@router.post("/bulk", response_model=BulkActionResponse, summary="批量操作")
async def bulk_news(
    data: BulkActionRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await news_service.bulk_action(db, data.action, data.selected)


# ============ 公开详情 ============

@router.get("/{news_id}/related", response_model=list[NewsListItem], summary="相关新闻")
async def related_news(
    news_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: Annotated[int, Query(ge=1, le=20)] = 5,
):
    news = await news_service.get_published(db, news_id)
    return await news_service.related(db, news, limit=limit)


@router.get("/{slug}", response_model=NewsDetailResponse, summary="新闻详情（记录一次浏览）")
async def get_news_detail(
    slug: str,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User | None, Depends(get_current_user_optional)] = None,
):
    news = await news_service.get_published_by_slug(db, slug)
    identity = identity_for(current_user, get_client_ip(request))
    _ = await view_service.record_view(
        db,
        news.id,
        identity,
        user_agent=request.headers.get("user-agent"),
        referer=request.headers.get("referer"),
    )
    await db.refresh(news)
    engagement = await news_service.engagement_counts(db, news.id)
    return NewsDetailResponse(
        **NewsResponse.model_validate(news).model_dump(),
        engagement=NewsEngagement(**engagement),
        user_reaction=await like_service.reaction_of(db, news.id, identity),
    )
