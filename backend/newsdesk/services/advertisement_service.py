"""广告服务层"""
import logging
from typing import Any

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import NotFoundError, ValidationError
from ..models.advertisement import Advertisement, AD_POSITIONS, AD_STATUSES, AD_RATE_TYPES
from ..models.media import Media
from ..schemas.advertisement import AdvertisementCreate, AdvertisementUpdate
from ..utils.timeutil import to_naive_utc
from .bulk import ensure_action, run_bulk

logger = logging.getLogger(__name__)


class AdvertisementService:
    """广告服务"""

    @staticmethod
    async def get(db: AsyncSession, ad_id: int) -> Advertisement:
        ad = await db.get(Advertisement, int(ad_id))
        if ad is None:
            raise NotFoundError("Advertisement not found")
        return ad

    @staticmethod
    def _validate_position(position: str | None) -> None:
        if position is not None and position not in AD_POSITIONS:
            raise ValidationError(f"Invalid position: {position}")

    @staticmethod
    async def _validate(db: AsyncSession, payload: dict[str, Any]) -> None:
        AdvertisementService._validate_position(payload.get("position"))
        if payload.get("status") is not None and payload["status"] not in AD_STATUSES:
            raise ValidationError(f"Invalid status: {payload['status']}")
        if payload.get("rate_type") is not None and payload["rate_type"] not in AD_RATE_TYPES:
            raise ValidationError(f"Invalid rate type: {payload['rate_type']}")
        if payload.get("media_id") is not None and await db.get(Media, int(payload["media_id"])) is None:
            raise ValidationError("Media does not exist.")
        for key in ("starts_at", "expires_at"):
            if key in payload:
                payload[key] = to_naive_utc(payload[key])
        starts_at, expires_at = payload.get("starts_at"), payload.get("expires_at")
        if starts_at is not None and expires_at is not None and expires_at <= starts_at:
            raise ValidationError("Expiry date must be after the start date.")

    @staticmethod
    async def create(db: AsyncSession, ad_data: AdvertisementCreate) -> Advertisement:
        payload = ad_data.model_dump()
        await AdvertisementService._validate(db, payload)
        ad = Advertisement(**payload)
        db.add(ad)
        await db.commit()
        await db.refresh(ad)
        logger.info("advertisement created id=%s position=%s status=%s", ad.id, ad.position, ad.status)
        return ad

    @staticmethod
    async def update(db: AsyncSession, ad_id: int, ad_data: AdvertisementUpdate) -> Advertisement:
        ad = await AdvertisementService.get(db, ad_id)
        payload = ad_data.model_dump(exclude_unset=True)
        await AdvertisementService._validate(db, payload)
        for k, v in payload.items():
            setattr(ad, k, v)
        await db.commit()
        await db.refresh(ad)
        return ad

    @staticmethod
    async def delete(db: AsyncSession, ad_id: int) -> None:
        ad = await AdvertisementService.get(db, ad_id)
        await db.delete(ad)
        await db.commit()
        logger.info("advertisement deleted id=%s", ad_id)

    @staticmethod
    async def get_for_position(db: AsyncSession, position: str, limit: int | None = None) -> list[Advertisement]:
        """指定位置当前可展示的广告，按 sort_order、创建时间排序"""
        if position not in AD_POSITIONS:
            raise ValidationError(f"Invalid position: {position}")
        stmt = (
            select(Advertisement)
            .where(Advertisement.position == position, Advertisement.displayable())
            .order_by(Advertisement.sort_order.asc(), Advertisement.created_at.asc(), Advertisement.id.asc())
        )
        if limit is not None:
            stmt = stmt.limit(int(limit))
        result = await db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def update_click_rate(db: AsyncSession, ad: Advertisement) -> Advertisement:
        """click_rate = clicks / impressions × 100，展示数为0时跳过"""
        await db.refresh(ad)
        if int(ad.impressions or 0) > 0:
            ad.refresh_click_rate()
            await db.commit()
            await db.refresh(ad)
        return ad

    @staticmethod
    async def _increment(db: AsyncSession, ad_id: int, column: str) -> Advertisement:
        ad = await AdvertisementService.get(db, ad_id)
        counter = getattr(Advertisement, column)
        await db.execute(
            update(Advertisement)
            .where(Advertisement.id == ad.id)
            .values({column: counter + 1})
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return await AdvertisementService.update_click_rate(db, ad)

    @staticmethod
    async def record_impression(db: AsyncSession, ad_id: int) -> Advertisement:
        return await AdvertisementService._increment(db, ad_id, "impressions")

    @staticmethod
    async def record_click(db: AsyncSession, ad_id: int) -> Advertisement:
        return await AdvertisementService._increment(db, ad_id, "clicks")

    @staticmethod
    def calculate_cost(ad: Advertisement) -> float:
        return ad.calculate_cost()

    @staticmethod
    async def performance(db: AsyncSession, ad_id: int) -> dict[str, Any]:
        ad = await AdvertisementService.get(db, ad_id)
        return {
            "impressions": int(ad.impressions or 0),
            "clicks": int(ad.clicks or 0),
            "click_rate": float(ad.click_rate or 0),
            "cost": ad.calculate_cost(),
            "status": ad.status,
            "is_displayable": ad.is_displayable,
        }

    @staticmethod
    async def duplicate(db: AsyncSession, ad_id: int) -> Advertisement:
        """复制广告：标题加 (Copy)，停用并清零统计"""
        source = await AdvertisementService.get(db, ad_id)
        copy = Advertisement(
            title=f"{source.title} (Copy)"[:255],
            description=source.description,
            rate=source.rate,
            rate_type=source.rate_type,
            media_id=source.media_id,
            html_content=source.html_content,
            click_url=source.click_url,
            tracking_code=source.tracking_code,
            position=source.position,
            sort_order=source.sort_order,
            display_rules=source.display_rules,
            status="inactive",
            starts_at=source.starts_at,
            expires_at=source.expires_at,
            impressions=0,
            clicks=0,
            click_rate=0.0,
        )
        db.add(copy)
        await db.commit()
        await db.refresh(copy)
        return copy

    @staticmethod
    async def set_status(db: AsyncSession, ad_id: int, status: str) -> Advertisement:
        if status not in AD_STATUSES:
            raise ValidationError(f"Invalid status: {status}")
        ad = await AdvertisementService.get(db, ad_id)
        ad.status = status
        await db.commit()
        await db.refresh(ad)
        return ad

    @staticmethod
    async def activate(db: AsyncSession, ad_id: int) -> Advertisement:
        return await AdvertisementService.set_status(db, ad_id, "active")

    @staticmethod
    async def deactivate(db: AsyncSession, ad_id: int) -> Advertisement:
        return await AdvertisementService.set_status(db, ad_id, "inactive")

    @staticmethod
    async def mark_expired(db: AsyncSession, ad_id: int) -> Advertisement:
        return await AdvertisementService.set_status(db, ad_id, "expired")

    @staticmethod
    async def get_list(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 20,
        position: str | None = None,
        status: str | None = None,
    ) -> tuple[list[Advertisement], int]:
        conditions = []
        if position:
            conditions.append(Advertisement.position == position)
        if status:
            conditions.append(Advertisement.status == status)
        count_result = await db.execute(select(func.count(Advertisement.id)).where(*conditions))
        total = int(count_result.scalar() or 0)
        result = await db.execute(
            select(Advertisement)
            .where(*conditions)
            .order_by(Advertisement.position.asc(), Advertisement.sort_order.asc(), Advertisement.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def bulk_action(db: AsyncSession, action: str, ids: list[int]) -> dict[str, Any]:
        action = ensure_action(action, {"activate", "deactivate", "delete"})

        async def _handle(ad_id: int) -> None:
            if action == "delete":
                await AdvertisementService.delete(db, ad_id)
            elif action == "activate":
                await AdvertisementService.activate(db, ad_id)
            else:
                await AdvertisementService.deactivate(db, ad_id)

        return await run_bulk(action, ids, _handle)


advertisement_service = AdvertisementService()
