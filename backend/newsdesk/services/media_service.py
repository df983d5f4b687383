"""媒体服务层（只管理元数据，文件存取由外部存储负责）"""
import logging
from typing import Any

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import ConflictError, NotFoundError
from ..models.advertisement import Advertisement
from ..models.media import Media, MEDIA_EXTENSIONS, media_type_for, human_file_size
from ..models.news import News
from ..schemas.media import MediaCreate, MediaUpdate
from .bulk import ensure_action, run_bulk

logger = logging.getLogger(__name__)


class MediaService:
    """媒体服务"""

    @staticmethod
    async def get(db: AsyncSession, media_id: int) -> Media:
        media = await db.get(Media, int(media_id))
        if media is None:
            raise NotFoundError("Media not found")
        return media

    @staticmethod
    async def register(db: AsyncSession, data: MediaCreate) -> Media:
        """登记上传文件；类型总是由文件名推断，非图片不保存尺寸"""
        payload = data.model_dump()
        media_type = media_type_for(payload.get("original_name") or payload["file_name"])
        dimensions = payload.pop("dimensions", None)
        media = Media(**payload, type=media_type, dimensions=dimensions if media_type == "image" else None)
        db.add(media)
        await db.commit()
        await db.refresh(media)
        logger.info("media registered id=%s type=%s path=%s", media.id, media.type, media.file_path)
        return media

    @staticmethod
    async def update(db: AsyncSession, media_id: int, data: MediaUpdate) -> Media:
        media = await MediaService.get(db, media_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(media, field, value)
        await db.commit()
        await db.refresh(media)
        return media

    @staticmethod
    async def is_in_use(db: AsyncSession, media_id: int) -> bool:
        """是否被新闻封面（含已软删除的新闻）或广告引用"""
        news_ref = await db.execute(select(News.id).where(News.featured_image_id == int(media_id)).limit(1))
        if news_ref.first() is not None:
            return True
        ad_ref = await db.execute(select(Advertisement.id).where(Advertisement.media_id == int(media_id)).limit(1))
        return ad_ref.first() is not None

    @staticmethod
    async def delete(db: AsyncSession, media_id: int) -> None:
        media = await MediaService.get(db, media_id)
        if await MediaService.is_in_use(db, media.id):
            raise ConflictError("Cannot delete media file that is currently in use.")
        await db.delete(media)
        await db.commit()
        logger.info("media deleted id=%s path=%s", media_id, media.file_path)

    @staticmethod
    async def get_list(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 20,
        type_: str | None = None,
        is_visible: bool | None = None,
        search: str | None = None,
    ) -> tuple[list[Media], int]:
        conditions = []
        if type_:
            conditions.append(Media.type == type_)
        if is_visible is not None:
            conditions.append(Media.is_visible == is_visible)
        if search:
            like = f"%{search.strip()}%"
            conditions.append(
                or_(Media.title.ilike(like), Media.original_name.ilike(like), Media.file_name.ilike(like))
            )
        count_result = await db.execute(select(func.count(Media.id)).where(*conditions))
        total = int(count_result.scalar() or 0)
        result = await db.execute(
            select(Media)
            .where(*conditions)
            .order_by(Media.created_at.desc(), Media.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def statistics(db: AsyncSession) -> dict[str, Any]:
        result = await db.execute(select(Media.type, func.count(Media.id)).group_by(Media.type))
        by_type = {t: 0 for t in MEDIA_EXTENSIONS}
        for media_type, count in result.all():
            by_type[str(media_type)] = int(count)
        size_result = await db.execute(select(func.coalesce(func.sum(Media.file_size), 0)))
        total_size = int(size_result.scalar() or 0)
        return {
            "total": sum(by_type.values()),
            "by_type": by_type,
            "total_size": total_size,
            "total_size_human": human_file_size(total_size),
        }

    @staticmethod
    async def bulk_action(db: AsyncSession, action: str, ids: list[int]) -> dict[str, Any]:
        a = ensure_action(action, {"delete", "show", "hide"})

        async def _handle(media_id: int) -> None:
            if a == "delete":
                await MediaService.delete(db, media_id)
                return
            media = await MediaService.get(db, media_id)
            media.is_visible = a == "show"
            await db.commit()

        return await run_bulk(a, ids, _handle)


media_service = MediaService()
