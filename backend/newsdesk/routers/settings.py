"""站点设置API路由"""
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..exceptions import NotFoundError
from ..models.user import User
from ..schemas.common import MessageResponse
from ..schemas.setting import SettingUpsert, SettingResponse
from ..services.settings_service import settings_service
from ..utils.deps import require_admin

router = APIRouter(prefix="/settings", tags=["站点设置"])


# ============ 公开接口 ============

@router.get("/public", summary="公开设置")
async def get_public_settings(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> dict[str, Any]:
    return await settings_service.get_public(db)


# ============ 管理接口 ============

@router.get("", response_model=list[SettingResponse], summary="全部设置")
async def list_settings(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    data = await settings_service.get_all(db)
    return [SettingResponse(key=key, **row) for key, row in data.items()]


@router.put("/{key}", response_model=SettingResponse, summary="写入设置")
async def put_setting(
    key: str,
    data: SettingUpsert,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    options = data.model_dump(exclude={"value", "type"}, exclude_none=True)
    setting = await settings_service.set(db, key, data.value, data.type, **options)
    row = (await settings_service.get_all(db))[setting.key]
    return SettingResponse(key=setting.key, **row)


@router.post("/bulk", summary="批量写入设置")
async def put_settings_bulk(
    items: dict[str, SettingUpsert],
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
) -> dict[str, int]:
    payload = {key: item.model_dump(exclude_none=True) for key, item in items.items()}
    count = await settings_service.set_many(db, payload)
    return {"updated": count}


@router.delete("/{key}", response_model=MessageResponse, summary="删除设置")
async def delete_setting(
    key: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_admin)],
):
    if not await settings_service.forget(db, key):
        raise NotFoundError("Setting not found")
    return MessageResponse(message="Setting deleted")


@router.post("/cache/clear", response_model=MessageResponse, summary="清除设置缓存")
async def clear_settings_cache(
    _: Annotated[User, Depends(require_admin)],
):
    await settings_service.clear_cache()
    return MessageResponse(message="Settings cache cleared")
