"""标签服务层"""
import logging
from typing import Any

from sqlalchemy import select, func, or_, desc
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import ConflictError, NotFoundError, ValidationError
from ..models.news import News
from ..models.tag import Tag, news_tags
from ..schemas.tag import TagCreate, TagUpdate
from ..utils.validators import slugify
from .bulk import ensure_action, run_bulk

logger = logging.getLogger(__name__)


class TagService:
    """标签服务"""

    @staticmethod
    async def get(db: AsyncSession, tag_id: int) -> Tag:
        tag = await db.get(Tag, int(tag_id))
        if tag is None:
            raise NotFoundError("Tag not found")
        return tag

    @staticmethod
    async def get_by_slug(db: AsyncSession, slug: str) -> Tag | None:
        result = await db.execute(select(Tag).where(Tag.slug == slug))
        return result.scalar_one_or_none()

    @staticmethod
    async def create(db: AsyncSession, data: TagCreate) -> Tag:
        payload = data.model_dump()
        slug = slugify(payload.get("slug") or "") or slugify(payload["title"])
        if not slug:
            raise ValidationError("Unable to derive a slug from the tag title.")
        if await TagService.get_by_slug(db, slug) is not None:
            raise ConflictError(f"Tag slug already exists: {slug}")
        payload["slug"] = slug
        tag = Tag(**payload)
        db.add(tag)
        await db.commit()
        await db.refresh(tag)
        return tag

    @staticmethod
    async def quick_create(db: AsyncSession, title: str) -> tuple[Tag, bool]:
        """按标题快速创建；slug 已存在时返回已有标签"""
        slug = slugify(title)
        if not slug:
            raise ValidationError("Unable to derive a slug from the tag title.")
        existing = await TagService.get_by_slug(db, slug)
        if existing is not None:
            return existing, False
        tag = Tag(title=title.strip(), slug=slug, is_active=True)
        db.add(tag)
        await db.commit()
        await db.refresh(tag)
        return tag, True

    @staticmethod
    async def update(db: AsyncSession, tag_id: int, data: TagUpdate) -> Tag:
        tag = await TagService.get(db, tag_id)
        update_data: dict[str, Any] = data.model_dump(exclude_unset=True)
        if "slug" in update_data:
            update_data["slug"] = slugify(update_data["slug"] or "")
        title_changed = "title" in update_data and update_data["title"] != tag.title
        if title_changed and not update_data.get("slug", tag.slug):
            update_data["slug"] = slugify(update_data["title"])
        elif "slug" in update_data and not update_data["slug"]:
            update_data.pop("slug")
        new_slug = update_data.get("slug")
        if new_slug and new_slug != tag.slug:
            other = await TagService.get_by_slug(db, new_slug)
            if other is not None and other.id != tag.id:
                raise ConflictError(f"Tag slug already exists: {new_slug}")
        for field, value in update_data.items():
            setattr(tag, field, value)
        await db.commit()
        await db.refresh(tag)
        return tag

    @staticmethod
    async def news_count(db: AsyncSession, tag_id: int) -> int:
        result = await db.execute(select(func.count()).select_from(news_tags).where(news_tags.c.tag_id == int(tag_id)))
        return int(result.scalar() or 0)

    @staticmethod
    async def published_news(db: AsyncSession, tag_id: int, limit: int = 20) -> list[News]:
        """标签下公开可见的新闻，最新发布在前"""
        tag = await TagService.get(db, tag_id)
        result = await db.execute(
            select(News)
            .join(news_tags, news_tags.c.news_id == News.id)
            .where(news_tags.c.tag_id == tag.id, News.effectively_published())
            .order_by(desc(News.published_at), desc(News.id))
            .limit(int(limit))
        )
        return list(result.scalars().all())

    @staticmethod
    async def delete(db: AsyncSession, tag_id: int) -> None:
        """删除标签；仍有关联新闻时拒绝"""
        tag = await TagService.get(db, tag_id)
        if await TagService.news_count(db, tag.id) > 0:
            raise ConflictError("Cannot delete tag with associated news articles.")
        await db.delete(tag)
        await db.commit()
        logger.info("tag deleted id=%s", tag_id)

    @staticmethod
    async def get_list(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 20,
        search: str | None = None,
        is_active: bool | None = None,
    ) -> tuple[list[Tag], int]:
        conditions = []
        if search:
            like = f"%{search.strip()}%"
            conditions.append(or_(Tag.title.ilike(like), Tag.description.ilike(like)))
        if is_active is not None:
            conditions.append(Tag.is_active == is_active)
        count_result = await db.execute(select(func.count(Tag.id)).where(*conditions))
        total = int(count_result.scalar() or 0)
        result = await db.execute(
            select(Tag).where(*conditions).order_by(Tag.title).offset((page - 1) * page_size).limit(page_size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def popular(db: AsyncSession, limit: int = 10) -> list[tuple[Tag, int]]:
        """按已发布新闻总数排序的活跃标签"""
        news_count = func.count(News.id).label("news_count")
        result = await db.execute(
            select(Tag, news_count)
            .join(news_tags, news_tags.c.tag_id == Tag.id)
            .join(News, (News.id == news_tags.c.news_id) & (News.status == "published") & News.deleted_at.is_(None))
            .where(Tag.is_active == True)
            .group_by(Tag.id)
            .order_by(desc(news_count), Tag.id)
            .limit(limit)
        )
        return [(row[0], int(row[1])) for row in result.all()]

    @staticmethod
    async def resolve(db: AsyncSession, tag_ids: list[int]) -> list[Tag]:
        """按ID取标签，缺失的ID报错"""
        ids = sorted({int(i) for i in tag_ids})
        if not ids:
            return []
        result = await db.execute(select(Tag).where(Tag.id.in_(ids)))
        tags = list(result.scalars().all())
        missing = set(ids) - {t.id for t in tags}
        if missing:
            raise ValidationError(f"Unknown tag ids: {', '.join(str(i) for i in sorted(missing))}")
        return tags

    @staticmethod
    async def bulk_action(db: AsyncSession, action: str, ids: list[int]) -> dict[str, Any]:
        a = ensure_action(action, {"delete", "activate", "deactivate"})

        async def _handle(tag_id: int) -> None:
            if a == "delete":
                await TagService.delete(db, tag_id)
                return
            tag = await TagService.get(db, tag_id)
            tag.is_active = a == "activate"
            await db.commit()

        return await run_bulk(a, ids, _handle)


tag_service = TagService()
