"""RSS服务层：订阅源管理、抓取导入与RSS导出"""
import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import Any
from urllib.parse import urlparse

import httpx
from sqlalchemy import select, func, update, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..exceptions import (
    ConflictError,
    DomainError,
    FormatError,
    NotFoundError,
    StorageError,
    TransportError,
    ValidationError,
)
from ..models.category import Category, LANGUAGES
from ..models.news import News
from ..models.rss_feed import RssFeed, FEED_STATUSES
from ..models.user import User
from ..schemas.rss import RssFeedCreate, RssFeedUpdate
from ..utils.permissions import Role
from ..utils.timeutil import utcnow, to_naive_utc
from ..utils.validators import make_excerpt, strip_tags, limit_text
from .bulk import ensure_action, run_bulk
from .category_service import category_service
from .news_service import news_service
from .settings_service import settings_service

logger = logging.getLogger(__name__)

EXPORT_DEFAULT_LIMIT = 20
EXPORT_MAX_LIMIT = 100
SOURCE_URL_MAX_LENGTH = 500


@dataclass
class FeedItem:
    title: str
    description: str
    link: str | None
    published_at: datetime


@dataclass
class ParsedFeed:
    kind: str  # RSS / Atom
    title: str | None = None
    description: str | None = None
    link: str | None = None
    items: list[FeedItem] = field(default_factory=list)


@dataclass
class FetchResult:
    items_imported: int
    items_found: int


def _truncate(value: str | None, max_len: int) -> str | None:
    if value is None:
        return None
    v = str(value).strip()
    if not v:
        return None
    return v[: int(max_len)]


def source_url_key(link: str | None) -> str | None:
    """去重与入库共用的链接形式（与 News.source_url 列宽一致）"""
    return _truncate(link, SOURCE_URL_MAX_LENGTH)


def _local_name(tag: str) -> str:
    if "}" in tag:
        return tag.split("}", 1)[1]
    return tag


def _find_first_text(elem: ET.Element, names: set[str]) -> str | None:
    for child in list(elem):
        if _local_name(child.tag) in names:
            txt = "".join(child.itertext()).strip()
            if txt:
                return txt
    return None


def _extract_atom_link(entry: ET.Element) -> str | None:
    links: list[str] = []
    preferred: str | None = None
    for child in list(entry):
        if _local_name(child.tag) != "link":
            continue
        href = str(child.attrib.get("href", "") or "").strip()
        if not href:
            continue
        rel = str(child.attrib.get("rel", "") or "").strip().lower()
        if rel in {"alternate", ""} and preferred is None:
            preferred = href
        links.append(href)
    return preferred or (links[0] if links else None)


def parse_date(value: str | None) -> datetime:
    """RFC 822 或 ISO 8601；缺失或无法解析时取当前时间"""
    raw = str(value or "").strip()
    if not raw:
        return utcnow()
    parsed: datetime | None
    try:
        parsed = parsedate_to_datetime(raw)
    except (TypeError, ValueError, IndexError):
        parsed = None
    if parsed is None:
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return utcnow()
    return to_naive_utc(parsed) or utcnow()


def _iter_named(root: ET.Element, name: str) -> list[ET.Element]:
    return [e for e in root.iter() if _local_name(e.tag) == name]


def parse_feed(xml_text: str) -> ParsedFeed:
    """
    解析RSS 2.0或Atom

    存在 channel 元素视为RSS，否则存在 entry 元素视为Atom，都没有则报格式错误。
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError:
        raise FormatError("Invalid XML format")

    channels = _iter_named(root, "channel")
    if channels:
        channel = channels[0]
        rss_items: list[FeedItem] = []
        for item in _iter_named(root, "item"):
            rss_items.append(
                FeedItem(
                    title=_find_first_text(item, {"title"}) or "",
                    description=_find_first_text(item, {"description"})
                    or _find_first_text(item, {"encoded"})
                    or "",
                    link=_find_first_text(item, {"link"}),
                    published_at=parse_date(_find_first_text(item, {"pubDate", "date"})),
                )
            )
        return ParsedFeed(
            kind="RSS",
            title=_find_first_text(channel, {"title"}),
            description=_find_first_text(channel, {"description"}),
            link=_find_first_text(channel, {"link"}),
            items=rss_items,
        )

    entries = _iter_named(root, "entry")
    if entries:
        atom_items = [
            FeedItem(
                title=_find_first_text(entry, {"title"}) or "",
                description=_find_first_text(entry, {"summary"}) or _find_first_text(entry, {"content"}) or "",
                link=_extract_atom_link(entry),
                published_at=parse_date(_find_first_text(entry, {"published", "updated"})),
            )
            for entry in entries
        ]
        return ParsedFeed(
            kind="Atom",
            title=_find_first_text(root, {"title"}),
            description=_find_first_text(root, {"subtitle"}),
            link=_extract_atom_link(root),
            items=atom_items,
        )

    raise FormatError("Unsupported feed format.")


def _is_http_url(url: str) -> bool:
    p = urlparse(str(url or "").strip())
    return p.scheme in {"http", "https"} and bool(p.netloc)


class RssService:
    """RSS服务"""

    def __init__(self, client_factory: Callable[..., httpx.AsyncClient] = httpx.AsyncClient):
        self.client_factory = client_factory

    # ============ 抓取与解析 ============

    async def download(self, url: str) -> str:
        settings = get_settings()
        timeout = float(settings.rss_fetch_timeout_seconds)
        headers = {"User-Agent": settings.rss_user_agent}
        try:
            async with self.client_factory(timeout=timeout, follow_redirects=True, headers=headers) as client:
                resp = await client.get(url)
        except httpx.TimeoutException:
            raise TransportError(f"Request timed out after {timeout:g}s")
        except httpx.HTTPError as e:
            raise TransportError(f"Connection error: {e}")
        if not resp.is_success:
            raise TransportError(f"HTTP error: {resp.status_code}")
        return resp.text

    async def fetch_parsed(self, url: str) -> ParsedFeed:
        return parse_feed(await self.download(url))

    @staticmethod
    async def _default_author_id(db: AsyncSession) -> int | None:
        result = await db.execute(
            select(User.id).where(User.role == Role.ADMIN).order_by(User.id.asc()).limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _existing_source_urls(db: AsyncSession, urls: list[str]) -> set[str]:
        if not urls:
            return set()
        result = await db.execute(select(News.source_url).where(News.source_url.in_(urls)))
        return {str(u) for u in result.scalars().all() if u}

    async def _record_failure(self, db: AsyncSession, feed: RssFeed, feed_id: int, message: str) -> None:
        """feed 可能已因回滚而过期，ID 由调用方提前取出"""
        await db.execute(
            update(RssFeed)
            .where(RssFeed.id == feed_id)
            .values(
                status="error",
                error_count=RssFeed.error_count + 1,
                last_error=message,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        await db.refresh(feed)
        logger.warning("rss fetch failed feed_id=%s error=%s", feed_id, message)

    @staticmethod
    def _fallback_title(feed_name: str, item: FeedItem) -> str:
        return limit_text(f"{feed_name} - {item.published_at:%Y-%m-%d %H:%M}", 252)

    async def fetch_one(self, db: AsyncSession, feed: RssFeed) -> FetchResult:
        """
        抓取单个订阅源并导入新条目

        以截断后的 source_url 去重；失败时订阅源标记为 error、错误计数加一，
        本次导入的新闻全部回滚，last_fetched_at 保持不变，异常继续抛给调用方。
        """
        feed_id = int(feed.id)
        try:
            parsed = await self.fetch_parsed(feed.url)
        except (TransportError, FormatError) as e:
            await self._record_failure(db, feed, feed_id, e.message)
            raise

        max_items = max(0, int(feed.max_items or 0))
        items = parsed.items[:max_items]
        try:
            imported = await self._import_items(db, feed, items)
            now = utcnow()
            feed.last_fetched_at = now
            feed.last_successful_fetch_at = now
            feed.total_items_fetched = int(feed.total_items_fetched or 0) + imported
            feed.last_error = None
            feed.status = "active"
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.exception("rss import failed feed_id=%s", feed_id)
            message = f"Import failed: {e.__class__.__name__}"
            await self._record_failure(db, feed, feed_id, message)
            raise StorageError(message) from e
        await db.refresh(feed)
        logger.info("rss feed fetched feed_id=%s found=%s imported=%s", feed_id, len(items), imported)
        return FetchResult(items_imported=imported, items_found=len(items))

    async def _import_items(self, db: AsyncSession, feed: RssFeed, items: list[FeedItem]) -> int:
        keyed = [(source_url_key(i.link), i) for i in items]
        existing = await self._existing_source_urls(db, [k for k, _ in keyed if k])
        author_id = await self._default_author_id(db)

        now = utcnow()
        imported = 0
        seen: set[str] = set()
        for key, item in keyed:
            if not key or key in existing or key in seen:
                continue
            seen.add(key)
            title = limit_text(strip_tags(item.title), 252) or self._fallback_title(str(feed.name), item)
            news = News(
                title=title,
                slug=await news_service.unique_slug(db, title),
                excerpt=make_excerpt(item.description) or None,
                content=item.description or "",
                language=feed.language or "en",
                category_id=feed.category_id,
                author_id=author_id,
                status="published" if feed.auto_publish else "draft",
                published_at=now if feed.auto_publish else None,
                source_url=key,
                source_name=_truncate(feed.name, 255),
            )
            db.add(news)
            await db.flush()
            imported += 1
        return imported

    async def _fetch_many(self, db: AsyncSession, feeds: list[RssFeed]) -> list[dict[str, Any]]:
        # 导入失败会回滚会话并使已加载的订阅源过期，先取出ID再逐个重新加载
        targets = [(int(f.id), str(f.name)) for f in feeds]
        results: list[dict[str, Any]] = []
        for feed_id, name in targets:
            feed = await db.get(RssFeed, feed_id)
            if feed is None:
                continue
            try:
                res = await self.fetch_one(db, feed)
            except DomainError as e:
                results.append(
                    {"feed_id": feed_id, "name": name, "success": False, "items_imported": 0, "items_found": 0, "error": e.message}
                )
                continue
            results.append(
                {
                    "feed_id": feed_id,
                    "name": name,
                    "success": True,
                    "items_imported": res.items_imported,
                    "items_found": res.items_found,
                    "error": None,
                }
            )
        return results

    async def fetch_all(self, db: AsyncSession) -> list[dict[str, Any]]:
        """按ID顺序抓取所有 active 订阅源；单个失败不影响其余"""
        result = await db.execute(select(RssFeed).where(RssFeed.status == "active").order_by(RssFeed.id.asc()))
        return await self._fetch_many(db, list(result.scalars().all()))

    async def fetch_due(self, db: AsyncSession) -> list[dict[str, Any]]:
        """仅抓取到期的订阅源（定时任务使用）"""
        now = utcnow()
        result = await db.execute(select(RssFeed).where(RssFeed.status == "active").order_by(RssFeed.id.asc()))
        due = [f for f in result.scalars().all() if f.needs_fetching(now)]
        if not due:
            return []
        return await self._fetch_many(db, due)

    async def test_url(self, url: str) -> dict[str, Any]:
        """探测订阅地址是否可用，不写库"""
        if not _is_http_url(url):
            return {"valid": False, "error": "URL must start with http:// or https://"}
        try:
            parsed = await self.fetch_parsed(url)
        except DomainError as e:
            return {"valid": False, "error": e.message}
        return {
            "valid": True,
            "type": parsed.kind,
            "title": parsed.title,
            "description": parsed.description,
            "link": parsed.link,
            "items_count": len(parsed.items),
        }

    # ============ RSS导出 ============

    @staticmethod
    def _rfc822(value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return format_datetime(value.astimezone(timezone.utc), usegmt=True)

    @staticmethod
    async def export(db: AsyncSession, category_id: int | None = None, limit: int = EXPORT_DEFAULT_LIMIT) -> str:
        """生成站点的RSS 2.0订阅"""
        if not await settings_service.get_bool(db, "enable_rss", True):
            raise NotFoundError("RSS feed is disabled")

        size = min(max(int(limit), 1), EXPORT_MAX_LIMIT)
        site_url = get_settings().site_url
        site_name = str(await settings_service.get(db, "site_name", get_settings().app_name) or get_settings().app_name)

        stmt = select(News).where(News.effectively_published())
        description = f"Latest news from {site_name}"
        if category_id is not None:
            category = await category_service.get(db, category_id)
            ids = await category_service.get_descendant_ids(db, category.id)
            stmt = stmt.where(News.category_id.in_(ids))
            description = f"Latest news from {category.name} - {site_name}"
        result = await db.execute(stmt.order_by(desc(News.published_at), desc(News.id)).limit(size))
        articles = list(result.scalars().all())

        rss = ET.Element("rss", {"version": "2.0"})
        channel = ET.SubElement(rss, "channel")
        ET.SubElement(channel, "title").text = site_name
        ET.SubElement(channel, "description").text = description
        ET.SubElement(channel, "link").text = site_url
        ET.SubElement(channel, "lastBuildDate").text = RssService._rfc822(utcnow())
        for news in articles:
            link = f"{site_url}/news/{news.slug}"
            item = ET.SubElement(channel, "item")
            ET.SubElement(item, "title").text = news.title
            ET.SubElement(item, "description").text = news.excerpt or ""
            ET.SubElement(item, "link").text = link
            if news.published_at is not None:
                ET.SubElement(item, "pubDate").text = RssService._rfc822(news.published_at)
            ET.SubElement(item, "guid", {"isPermaLink": "true"}).text = link

        body = ET.tostring(rss, encoding="unicode")
        return '<?xml version="1.0" encoding="UTF-8"?>\n' + body

    # ============ 订阅源管理 ============

    @staticmethod
    async def get(db: AsyncSession, feed_id: int) -> RssFeed:
        feed = await db.get(RssFeed, int(feed_id))
        if feed is None:
            raise NotFoundError("RSS feed not found")
        return feed

    @staticmethod
    async def _url_taken(db: AsyncSession, url: str, exclude_id: int | None = None) -> bool:
        stmt = select(RssFeed.id).where(RssFeed.url == url)
        if exclude_id is not None:
            stmt = stmt.where(RssFeed.id != int(exclude_id))
        result = await db.execute(stmt.limit(1))
        return result.first() is not None

    @staticmethod
    async def _validate(db: AsyncSession, payload: dict[str, Any], exclude_id: int | None = None) -> None:
        if "url" in payload:
            url = str(payload["url"] or "").strip()
            if not _is_http_url(url):
                raise ValidationError("Feed URL must be a valid http(s) URL.")
            if await RssService._url_taken(db, url, exclude_id):
                raise ConflictError("A feed with this URL already exists.")
            payload["url"] = url
        if payload.get("status") is not None and payload["status"] not in FEED_STATUSES:
            raise ValidationError(f"Invalid status: {payload['status']}")
        if payload.get("language") is not None and payload["language"] not in LANGUAGES:
            raise ValidationError(f"Invalid language: {payload['language']}")
        if payload.get("category_id") is not None and await db.get(Category, int(payload["category_id"])) is None:
            raise ValidationError("Category does not exist.")

    @staticmethod
    async def create(db: AsyncSession, feed_data: RssFeedCreate) -> RssFeed:
        payload = feed_data.model_dump()
        await RssService._validate(db, payload)
        feed = RssFeed(**payload)
        db.add(feed)
        await db.commit()
        await db.refresh(feed)
        logger.info("rss feed created id=%s url=%s", feed.id, feed.url)
        return feed

    @staticmethod
    async def update(db: AsyncSession, feed_id: int, feed_data: RssFeedUpdate) -> RssFeed:
        feed = await RssService.get(db, feed_id)
        payload = feed_data.model_dump(exclude_unset=True)
        await RssService._validate(db, payload, exclude_id=feed.id)
        for k, v in payload.items():
            setattr(feed, k, v)
        await db.commit()
        await db.refresh(feed)
        return feed

    @staticmethod
    async def delete(db: AsyncSession, feed_id: int) -> None:
        feed = await RssService.get(db, feed_id)
        await db.delete(feed)
        await db.commit()
        logger.info("rss feed deleted id=%s", feed_id)

    @staticmethod
    async def duplicate(db: AsyncSession, feed_id: int) -> RssFeed:
        """复制订阅源：名称加 (Copy)，URL追加 #copy-N，停用并清零计数"""
        source = await RssService.get(db, feed_id)
        base_url = source.url.split("#", 1)[0]
        n = 1
        url = f"{base_url}#copy-{n}"
        while await RssService._url_taken(db, url):
            n += 1
            url = f"{base_url}#copy-{n}"
        copy = RssFeed(
            name=f"{source.name} (Copy)"[:255],
            url=url,
            description=source.description,
            website_url=source.website_url,
            category_id=source.category_id,
            status="inactive",
            language=source.language,
            fetch_frequency=source.fetch_frequency,
            max_items=source.max_items,
            auto_publish=source.auto_publish,
            parsing_rules=source.parsing_rules,
            total_items_fetched=0,
            error_count=0,
        )
        db.add(copy)
        await db.commit()
        await db.refresh(copy)
        return copy

    @staticmethod
    async def reset_errors(db: AsyncSession, feed_id: int) -> RssFeed:
        feed = await RssService.get(db, feed_id)
        feed.error_count = 0
        feed.last_error = None
        if feed.status == "error":
            feed.status = "active"
        await db.commit()
        await db.refresh(feed)
        return feed

    @staticmethod
    async def set_status(db: AsyncSession, feed_id: int, status: str) -> RssFeed:
        if status not in FEED_STATUSES:
            raise ValidationError(f"Invalid status: {status}")
        feed = await RssService.get(db, feed_id)
        feed.status = status
        await db.commit()
        await db.refresh(feed)
        return feed

    @staticmethod
    async def get_list(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 20,
        status: str | None = None,
        keyword: str | None = None,
    ) -> tuple[list[RssFeed], int]:
        conditions = []
        if status:
            conditions.append(RssFeed.status == status)
        if keyword:
            like = f"%{keyword.strip()}%"
            conditions.append(RssFeed.name.ilike(like) | RssFeed.url.ilike(like))
        count_result = await db.execute(select(func.count(RssFeed.id)).where(*conditions))
        total = int(count_result.scalar() or 0)
        result = await db.execute(
            select(RssFeed).where(*conditions).order_by(RssFeed.id.desc()).offset((page - 1) * page_size).limit(page_size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def statistics(db: AsyncSession) -> dict[str, int]:
        result = await db.execute(select(RssFeed.status, func.count(RssFeed.id)).group_by(RssFeed.status))
        by_status = {str(s): int(c) for s, c in result.all()}
        fetched = await db.execute(select(func.coalesce(func.sum(RssFeed.total_items_fetched), 0)))
        return {
            "total": sum(by_status.values()),
            "active": by_status.get("active", 0),
            "inactive": by_status.get("inactive", 0),
            "error": by_status.get("error", 0),
            "total_items_fetched": int(fetched.scalar() or 0),
        }

    async def bulk_action(self, db: AsyncSession, action: str, ids: list[int]) -> dict[str, Any]:
        action = ensure_action(action, {"activate", "deactivate", "delete", "fetch"})

        async def _handle(feed_id: int) -> None:
            if action == "delete":
                await self.delete(db, feed_id)
            elif action == "fetch":
                await self.fetch_one(db, await self.get(db, feed_id))
            else:
                await self.set_status(db, feed_id, "active" if action == "activate" else "inactive")

        return await run_bulk(action, ids, _handle)


rss_service = RssService()
