"""分类API路由"""
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.category import (
    CategoryCreate, CategoryUpdate, CategoryResponse, CategoryListResponse,
    CategoryTreeNode, BreadcrumbItem, CategoryDetailResponse, CategoryPopularItem,
)
from ..schemas.common import BulkActionRequest, BulkActionResponse, MessageResponse
from ..services.category_service import category_service
from ..utils.deps import require_editor

router = APIRouter(prefix="/categories", tags=["分类"])


# ============ 公开接口 ============

@router.get("/tree", response_model=list[CategoryTreeNode], summary="分类树")
async def get_category_tree(
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await category_service.get_tree(db)


@router.get("/popular", response_model=list[CategoryPopularItem], summary="热门分类")
async def get_popular_categories(
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: Annotated[int, Query(ge=1, le=50)] = 6,
):
    rows = await category_service.popular(db, limit)
    return [CategoryPopularItem(id=c.id, name=c.name, slug=c.slug, news_count=n) for c, n in rows]


@router.get("/{category_id}/breadcrumb", response_model=list[BreadcrumbItem], summary="面包屑")
async def get_category_breadcrumb(
    category_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await category_service.get_breadcrumb(db, category_id)


@router.get("/{category_id}", response_model=CategoryDetailResponse, summary="分类详情")
async def get_category(
    category_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    category = await category_service.get(db, category_id)
    base = CategoryResponse.model_validate(category)
    return CategoryDetailResponse(
        **base.model_dump(),
        breadcrumb=[BreadcrumbItem(**b) for b in await category_service.get_breadcrumb(db, category.id)],
        total_news_count=await category_service.get_total_news_count(db, category.id),
    )


# ============ 管理接口 ============

@router.get("", response_model=CategoryListResponse, summary="分类列表")
async def list_categories(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
    search: str | None = None,
    is_active: bool | None = None,
    parent_id: int | None = None,
    language: str | None = None,
):
    items, total = await category_service.get_list(
        db, page, page_size, search=search, is_active=is_active, parent_id=parent_id, language=language
    )
    return CategoryListResponse(
        items=[CategoryResponse.model_validate(c) for c in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("", response_model=CategoryResponse, status_code=201, summary="创建分类")
async def create_category(
    data: CategoryCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await category_service.create(db, data)


@router.put("/{category_id}", response_model=CategoryResponse, summary="更新分类")
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await category_service.update(db, category_id, data)


@router.delete("/{category_id}", response_model=MessageResponse, summary="删除分类")
async def delete_category(
    category_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    await category_service.delete(db, category_id)
    return MessageResponse(message="Category deleted")


@router.post("/bulk", response_model=BulkActionResponse, summary="批量操作")
async def bulk_categories(
    data: BulkActionRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await category_service.bulk_action(db, data.action, data.selected)
