"""广告API路由"""
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.advertisement import (
    AdvertisementCreate, AdvertisementUpdate, AdvertisementResponse, AdvertisementPublic,
    AdvertisementListResponse, AdvertisementPerformance, AdCounterResponse,
)
from ..schemas.common import BulkActionRequest, BulkActionResponse, MessageResponse
from ..services.advertisement_service import advertisement_service
from ..utils.deps import require_admin

router = APIRouter(prefix="/ads", tags=["广告"])


# ============ 公开接口 ============

@router.get("/position/{position}", response_model=list[AdvertisementPublic], summary="指定位置的广告")
async def get_ads_for_position(
    position: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    limit: Annotated[int | None, Query(ge=1, le=50)] = None,
):
    return await advertisement_service.get_for_position(db, position, limit)


@router.post("/{ad_id}/impression", response_model=AdCounterResponse, summary="记录展示")
async def record_impression(
    ad_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await advertisement_service.record_impression(db, ad_id)


@router.post("/{ad_id}/click", response_model=AdCounterResponse, summary="记录点击")
async def record_click(
    ad_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await advertisement_service.record_click(db, ad_id)


# ============ 管理接口 ============

@router.get("", response_model=AdvertisementListResponse, summary="广告列表")
async def list_ads(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
    position: str | None = None,
    status: str | None = None,
):
    items, total = await advertisement_service.get_list(db, page, page_size, position=position, status=status)
    return AdvertisementListResponse(
        items=[AdvertisementResponse.model_validate(a) for a in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("", response_model=AdvertisementResponse, status_code=201, summary="创建广告")
async def create_ad(
    data: AdvertisementCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    return await advertisement_service.create(db, data)


@router.post("/bulk", response_model=BulkActionResponse, summary="批量操作")
async def bulk_ads(
    data: BulkActionRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    return await advertisement_service.bulk_action(db, data.action, data.selected)


@router.get("/{ad_id}", response_model=AdvertisementResponse, summary="广告详情")
async def get_ad(
    ad_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    return await advertisement_service.get(db, ad_id)


@router.put("/{ad_id}", response_model=AdvertisementResponse, summary="更新广告")
async def update_ad(
    ad_id: int,
    data: AdvertisementUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    return await advertisement_service.update(db, ad_id, data)


@router.delete("/{ad_id}", response_model=MessageResponse, summary="删除广告")
async def delete_ad(
    ad_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    await advertisement_service.delete(db, ad_id)
    return MessageResponse(message="Advertisement deleted")


@router.post("/{ad_id}/duplicate", response_model=AdvertisementResponse, status_code=201, summary="复制广告")
async def duplicate_ad(
    ad_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    return await advertisement_service.duplicate(db, ad_id)


@router.get("/{ad_id}/performance", response_model=AdvertisementPerformance, summary="广告效果")
async def ad_performance(
    ad_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    return await advertisement_service.performance(db, ad_id)


@router.post("/{ad_id}/activate", response_model=AdvertisementResponse, summary="启用")
async def activate_ad(
    ad_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    return await advertisement_service.activate(db, ad_id)


@router.post("/{ad_id}/deactivate", response_model=AdvertisementResponse, summary="停用")
async def deactivate_ad(
    ad_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    return await advertisement_service.deactivate(db, ad_id)
