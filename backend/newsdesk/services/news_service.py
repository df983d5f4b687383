"""新闻服务层"""
import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select, func, desc, or_, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from ..exceptions import ConflictError, NotFoundError, ValidationError
from ..models.category import Category, LANGUAGES
from ..models.comment import Comment
from ..models.like import Like
from ..models.media import Media
from ..models.news import News, NewsView, NEWS_STATUSES
from ..models.tag import Tag, news_tags
from ..schemas.news import NewsCreate, NewsUpdate
from ..utils.timeutil import utcnow, to_naive_utc
from ..utils.validators import slugify, make_excerpt
from .bulk import ensure_action, run_bulk
from .category_service import category_service
from .settings_service import settings_service
from .tag_service import tag_service

logger = logging.getLogger(__name__)

SEARCH_MIN_LENGTH = 2
SEARCH_MAX_LENGTH = 255


class NewsService:
    """新闻服务"""

    # ============ 基础读取 ============

    @staticmethod
    async def get(db: AsyncSession, news_id: int, include_deleted: bool = False) -> News:
        news = await db.get(News, int(news_id))
        if news is None or (news.deleted_at is not None and not include_deleted):
            raise NotFoundError("News not found")
        return news

    @staticmethod
    async def get_published(db: AsyncSession, news_id: int) -> News:
        """获取公开可见的新闻"""
        result = await db.execute(select(News).where(News.id == int(news_id), News.effectively_published()))
        news = result.scalar_one_or_none()
        if news is None:
            raise NotFoundError("News not found")
        return news

    @staticmethod
    async def get_published_by_slug(db: AsyncSession, slug: str) -> News:
        result = await db.execute(select(News).where(News.slug == slug, News.effectively_published()))
        news = result.scalar_one_or_none()
        if news is None:
            raise NotFoundError("News not found")
        return news

    # ============ 校验与派生字段 ============

    @staticmethod
    def _validate_status(value: str | None) -> None:
        if value is not None and value not in NEWS_STATUSES:
            raise ValidationError(f"Invalid status: {value}")

    @staticmethod
    def _validate_language(value: str | None) -> None:
        if value is not None and value not in LANGUAGES:
            raise ValidationError(f"Invalid language: {value}")

    @staticmethod
    async def _check_refs(db: AsyncSession, category_id: int | None, featured_image_id: int | None) -> None:
        if category_id is not None and await db.get(Category, int(category_id)) is None:
            raise ValidationError("Category does not exist.")
        if featured_image_id is not None and await db.get(Media, int(featured_image_id)) is None:
            raise ValidationError("Featured image does not exist.")

    @staticmethod
    async def _slug_taken(db: AsyncSession, slug: str, exclude_id: int | None = None) -> bool:
        stmt = select(News.id).where(News.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(News.id != int(exclude_id))
        result = await db.execute(stmt.limit(1))
        return result.first() is not None

    @staticmethod
    async def unique_slug(db: AsyncSession, title: str, exclude_id: int | None = None) -> str:
        """由标题派生slug，重复时追加 -2、-3 …"""
        base = slugify(title) or "news"
        candidate = base
        n = 2
        while await NewsService._slug_taken(db, candidate, exclude_id):
            candidate = f"{base}-{n}"
            n += 1
        return candidate

    @staticmethod
    async def _explicit_slug(db: AsyncSession, raw: str, exclude_id: int | None = None) -> str:
        slug = slugify(raw)
        if slug and await NewsService._slug_taken(db, slug, exclude_id):
            raise ConflictError(f"News slug already exists: {slug}")
        return slug

    @staticmethod
    async def _source_url_taken(db: AsyncSession, source_url: str, exclude_id: int | None = None) -> bool:
        stmt = select(News.id).where(News.source_url == source_url)
        if exclude_id is not None:
            stmt = stmt.where(News.id != int(exclude_id))
        result = await db.execute(stmt.limit(1))
        return result.first() is not None

    # ============ 写操作 ============

    @staticmethod
    async def create(db: AsyncSession, news_data: NewsCreate, author_id: int | None = None) -> News:
        """创建新闻"""
        payload: dict[str, Any] = news_data.model_dump()
        tag_ids: list[int] = payload.pop("tag_ids", []) or []
        NewsService._validate_status(payload.get("status"))
        NewsService._validate_language(payload.get("language"))
        await NewsService._check_refs(db, payload.get("category_id"), payload.get("featured_image_id"))
        if payload.get("source_url") and await NewsService._source_url_taken(db, payload["source_url"]):
            raise ConflictError("An article with this source URL already exists.")

        slug = await NewsService._explicit_slug(db, payload.get("slug") or "")
        payload["slug"] = slug or await NewsService.unique_slug(db, payload["title"])
        if not payload.get("excerpt") and payload.get("content"):
            payload["excerpt"] = make_excerpt(payload["content"])
        payload["published_at"] = to_naive_utc(payload.get("published_at"))
        if payload.get("status") == "published" and payload["published_at"] is None:
            payload["published_at"] = utcnow()

        news = News(**payload, author_id=author_id)
        if tag_ids:
            news.tags = await tag_service.resolve(db, tag_ids)
        db.add(news)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise ConflictError("News slug or source URL already exists.")
        await db.refresh(news)
        logger.info("news created id=%s status=%s slug=%s", news.id, news.status, news.slug)
        return news

    @staticmethod
    async def update(db: AsyncSession, news_id: int, news_data: NewsUpdate) -> News:
        """更新新闻"""
        news = await NewsService.get(db, news_id)
        update_data: dict[str, Any] = news_data.model_dump(exclude_unset=True)
        tag_ids = update_data.pop("tag_ids", None)
        NewsService._validate_status(update_data.get("status"))
        NewsService._validate_language(update_data.get("language"))
        await NewsService._check_refs(db, update_data.get("category_id"), update_data.get("featured_image_id"))
        if update_data.get("source_url") and await NewsService._source_url_taken(
            db, update_data["source_url"], exclude_id=news.id
        ):
            raise ConflictError("An article with this source URL already exists.")

        if "slug" in update_data:
            update_data["slug"] = await NewsService._explicit_slug(db, update_data["slug"] or "", exclude_id=news.id)
        title_changed = "title" in update_data and update_data["title"] != news.title
        if title_changed and not update_data.get("slug", news.slug):
            update_data["slug"] = await NewsService.unique_slug(db, update_data["title"], exclude_id=news.id)
        elif "slug" in update_data and not update_data["slug"]:
            update_data.pop("slug")

        if "published_at" in update_data:
            update_data["published_at"] = to_naive_utc(update_data["published_at"])

        for field, value in update_data.items():
            setattr(news, field, value)

        if not news.excerpt and news.content:
            news.excerpt = make_excerpt(news.content)
        if news.status == "published" and news.published_at is None:
            news.published_at = utcnow()
        if tag_ids is not None:
            news.tags = await tag_service.resolve(db, tag_ids)

        await db.commit()
        await db.refresh(news)
        return news

    @staticmethod
    async def sync_tags(db: AsyncSession, news_id: int, tag_ids: list[int]) -> News:
        news = await NewsService.get(db, news_id)
        news.tags = await tag_service.resolve(db, tag_ids)
        await db.commit()
        await db.refresh(news)
        return news

    @staticmethod
    async def set_status(db: AsyncSession, news_id: int, status: str) -> News:
        """直接切换状态（任意状态之间均可转换）"""
        NewsService._validate_status(status)
        news = await NewsService.get(db, news_id)
        news.status = status
        if status == "published" and news.published_at is None:
            news.published_at = utcnow()
        await db.commit()
        await db.refresh(news)
        logger.info("news status changed id=%s status=%s", news.id, status)
        return news

    @staticmethod
    async def publish(db: AsyncSession, news_id: int) -> News:
        return await NewsService.set_status(db, news_id, "published")

    @staticmethod
    async def archive(db: AsyncSession, news_id: int) -> News:
        return await NewsService.set_status(db, news_id, "archived")

    @staticmethod
    async def make_draft(db: AsyncSession, news_id: int) -> News:
        return await NewsService.set_status(db, news_id, "draft")

    @staticmethod
    async def soft_delete(db: AsyncSession, news_id: int) -> None:
        news = await NewsService.get(db, news_id)
        news.deleted_at = utcnow()
        await db.commit()
        logger.info("news soft-deleted id=%s", news_id)

    @staticmethod
    async def restore(db: AsyncSession, news_id: int) -> News:
        news = await NewsService.get(db, news_id, include_deleted=True)
        news.deleted_at = None
        await db.commit()
        await db.refresh(news)
        return news

    @staticmethod
    async def bulk_action(db: AsyncSession, action: str, ids: list[int]) -> dict[str, Any]:
        a = ensure_action(action, {"delete", "publish", "archive", "draft"})
        status_for = {"publish": "published", "archive": "archived", "draft": "draft"}

        async def _handle(news_id: int) -> None:
            if a == "delete":
                await NewsService.soft_delete(db, news_id)
            else:
                _ = await NewsService.set_status(db, news_id, status_for[a])

        return await run_bulk(a, ids, _handle)

    # ============ 查询 ============

    @staticmethod
    def _search_condition(keyword: str) -> ColumnElement[bool]:
        like = f"%{keyword.strip()}%"
        return or_(News.title.ilike(like), News.excerpt.ilike(like), News.content.ilike(like))

    @staticmethod
    async def _paginate(
        db: AsyncSession,
        conditions: list[ColumnElement[bool]],
        page: int,
        page_size: int,
        joins: list[tuple[Any, Any]] | None = None,
    ) -> tuple[list[News], int]:
        count_stmt = select(func.count(func.distinct(News.id))).select_from(News)
        stmt = select(News)
        for target, onclause in joins or []:
            count_stmt = count_stmt.join(target, onclause)
            stmt = stmt.join(target, onclause)
        count_result = await db.execute(count_stmt.where(*conditions))
        total = int(count_result.scalar() or 0)
        result = await db.execute(
            stmt.where(*conditions)
            .order_by(desc(News.published_at), desc(News.id))
            .offset((page - 1) * page_size)
            .limit(page_size)
            .distinct()
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def resolve_page_size(db: AsyncSession, page_size: int | None) -> int:
        if page_size is not None:
            return int(page_size)
        return await settings_service.get_int(db, "articles_per_page", 12)

    @staticmethod
    async def get_published_list(
        db: AsyncSession,
        page: int = 1,
        page_size: int | None = None,
        category_id: int | None = None,
        tag_slug: str | None = None,
        author_id: int | None = None,
        keyword: str | None = None,
        featured: bool | None = None,
    ) -> tuple[list[News], int, int]:
        """公开新闻列表；分类筛选包含所有子分类"""
        size = await NewsService.resolve_page_size(db, page_size)
        conditions: list[ColumnElement[bool]] = [News.effectively_published()]
        joins: list[tuple[Any, Any]] = []
        if category_id is not None:
            ids = await category_service.get_descendant_ids(db, category_id)
            conditions.append(News.category_id.in_(ids))
        if tag_slug:
            joins.append((news_tags, news_tags.c.news_id == News.id))
            joins.append((Tag, Tag.id == news_tags.c.tag_id))
            conditions.append(Tag.slug == tag_slug)
        if author_id is not None:
            conditions.append(News.author_id == int(author_id))
        if keyword:
            conditions.append(NewsService._search_condition(keyword))
        if featured is not None:
            conditions.append(News.is_featured == featured)
        items, total = await NewsService._paginate(db, conditions, page, size, joins)
        return items, total, size

    @staticmethod
    async def search(
        db: AsyncSession, query: str, page: int = 1, page_size: int | None = None
    ) -> tuple[list[News], int, int]:
        """标题/摘要/正文 子串匹配（不区分大小写）"""
        q = str(query or "").strip()
        if len(q) < SEARCH_MIN_LENGTH or len(q) > SEARCH_MAX_LENGTH:
            raise ValidationError(
                f"Search query must be between {SEARCH_MIN_LENGTH} and {SEARCH_MAX_LENGTH} characters."
            )
        return await NewsService.get_published_list(db, page=page, page_size=page_size, keyword=q)

    @staticmethod
    async def get_admin_list(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 20,
        status: str | None = None,
        category_id: int | None = None,
        keyword: str | None = None,
        featured: bool | None = None,
        trashed: bool = False,
    ) -> tuple[list[News], int]:
        NewsService._validate_status(status)
        conditions: list[ColumnElement[bool]] = [
            News.deleted_at.is_not(None) if trashed else News.deleted_at.is_(None)
        ]
        if status:
            conditions.append(News.status == status)
        if category_id is not None:
            conditions.append(News.category_id == int(category_id))
        if keyword:
            conditions.append(NewsService._search_condition(keyword))
        if featured is not None:
            conditions.append(News.is_featured == featured)
        return await NewsService._paginate(db, conditions, page, page_size)

    @staticmethod
    async def trending(db: AsyncSession, days: int = 7, limit: int = 10) -> list[tuple[News, int]]:
        """
        热门新闻

        只统计最近 days 天内的浏览事件（每次按当前时间计算窗口），
        按窗口内浏览数降序、ID升序排列；窗口内没有浏览的文章不返回。
        """
        now = utcnow()
        since = now - timedelta(days=int(days))
        window = (
            select(NewsView.news_id.label("news_id"), func.count(NewsView.id).label("window_views"))
            .where(NewsView.viewed_at >= since)
            .group_by(NewsView.news_id)
            .subquery()
        )
        result = await db.execute(
            select(News, window.c.window_views)
            .join(window, window.c.news_id == News.id)
            .where(News.effectively_published(now))
            .order_by(desc(window.c.window_views), News.id)
            .limit(int(limit))
        )
        return [(row[0], int(row[1])) for row in result.all()]

    @staticmethod
    async def related(db: AsyncSession, news: News, limit: int = 5) -> list[News]:
        """同分类、排除自身、已公开发布，按发布时间倒序"""
        if news.category_id is None:
            return []
        result = await db.execute(
            select(News)
            .where(
                and_(
                    News.category_id == news.category_id,
                    News.id != news.id,
                    News.effectively_published(),
                )
            )
            .order_by(desc(News.published_at), desc(News.id))
            .limit(int(limit))
        )
        return list(result.scalars().all())

    @staticmethod
    async def featured(db: AsyncSession, limit: int = 5) -> list[News]:
        result = await db.execute(
            select(News)
            .where(News.effectively_published(), News.is_featured == True)
            .order_by(desc(News.published_at), desc(News.id))
            .limit(int(limit))
        )
        return list(result.scalars().all())

    @staticmethod
    async def latest(db: AsyncSession, limit: int = 12) -> list[News]:
        result = await db.execute(
            select(News).where(News.effectively_published()).order_by(desc(News.published_at), desc(News.id)).limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def popular(db: AsyncSession, limit: int = 10) -> list[News]:
        """按累计浏览量排序"""
        result = await db.execute(
            select(News).where(News.effectively_published()).order_by(desc(News.views_count), News.id).limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def engagement_counts(db: AsyncSession, news_id: int) -> dict[str, int]:
        """评论数（已审核）、点赞数、点踩数，实时计算"""
        comments = await db.execute(
            select(func.count(Comment.id)).where(
                Comment.news_id == int(news_id), Comment.status == "approved", Comment.deleted_at.is_(None)
            )
        )
        likes = await db.execute(
            select(Like.type, func.count(Like.id)).where(Like.news_id == int(news_id)).group_by(Like.type)
        )
        by_type = {str(t): int(c) for t, c in likes.all()}
        return {
            "comments_count": int(comments.scalar() or 0),
            "likes_count": by_type.get("like", 0),
            "dislikes_count": by_type.get("dislike", 0),
        }

    @staticmethod
    async def stats(db: AsyncSession) -> dict[str, int]:
        now = utcnow()
        live = News.deleted_at.is_(None)
        result = await db.execute(
            select(News.status, func.count(News.id)).where(live).group_by(News.status)
        )
        by_status = {str(s): int(c) for s, c in result.all()}
        scheduled = await db.execute(
            select(func.count(News.id)).where(live, News.status == "published", News.published_at > now)
        )
        deleted = await db.execute(select(func.count(News.id)).where(News.deleted_at.is_not(None)))
        return {
            "total": sum(by_status.values()),
            "published": by_status.get("published", 0),
            "draft": by_status.get("draft", 0),
            "archived": by_status.get("archived", 0),
            "scheduled": int(scheduled.scalar() or 0),
            "deleted": int(deleted.scalar() or 0),
        }


news_service = NewsService()
