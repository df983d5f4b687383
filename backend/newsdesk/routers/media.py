"""媒体库API路由"""
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.common import BulkActionRequest, BulkActionResponse, MessageResponse
from ..schemas.media import MediaCreate, MediaUpdate, MediaResponse, MediaListResponse, MediaStatistics
from ..services.media_service import media_service
from ..utils.deps import require_author, require_editor

router = APIRouter(prefix="/media", tags=["媒体库"])


@router.get("", response_model=MediaListResponse, summary="媒体列表")
async def list_media(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_author)],
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
    type: str | None = None,
    is_visible: bool | None = None,
    search: str | None = None,
):
    items, total = await media_service.get_list(
        db, page, page_size, type_=type, is_visible=is_visible, search=search
    )
    return MediaListResponse(
        items=[MediaResponse.model_validate(m) for m in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/statistics", response_model=MediaStatistics, summary="媒体统计")
async def media_statistics(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await media_service.statistics(db)


@router.post("", response_model=MediaResponse, status_code=201, summary="登记媒体")
async def register_media(
    data: MediaCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_author)],
):
    return await media_service.register(db, data)


@router.get("/{media_id}", response_model=MediaResponse, summary="媒体详情")
async def get_media(
    media_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_author)],
):
    return await media_service.get(db, media_id)


@router.put("/{media_id}", response_model=MediaResponse, summary="更新媒体")
async def update_media(
    media_id: int,
    data: MediaUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await media_service.update(db, media_id, data)


@router.delete("/{media_id}", response_model=MessageResponse, summary="删除媒体")
async def delete_media(
    media_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    await media_service.delete(db, media_id)
    return MessageResponse(message="Media deleted")


@router.post("/bulk", response_model=BulkActionResponse, summary="批量操作")
async def bulk_media(
    data: BulkActionRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await media_service.bulk_action(db, data.action, data.selected)
