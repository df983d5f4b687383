"""浏览统计服务层"""
import logging
import re
from collections import Counter
from datetime import timedelta
from typing import Any
from urllib.parse import urlparse

from sqlalchemy import select, func, update, delete, distinct
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.news import News, NewsView
from ..utils.identity import Identity, Registered
from ..utils.timeutil import utcnow
from .news_service import news_service

logger = logging.getLogger(__name__)

_BROWSERS: tuple[str, ...] = ("Chrome", "Firefox", "Safari", "Edge")
_OPERATING_SYSTEMS: tuple[tuple[str, str], ...] = (
    ("Windows", "Windows"),
    ("Mac OS X", "macOS"),
    ("Linux", "Linux"),
    ("Android", "Android"),
    ("iOS", "iOS"),
)


def parse_device_info(user_agent: str | None) -> dict[str, str]:
    """从 User-Agent 粗略识别设备类型、浏览器与操作系统"""
    ua = str(user_agent or "")
    device = "desktop"
    if re.search(r"Mobile|Android|iPhone|iPad", ua):
        device = "mobile"
    if re.search(r"Tablet|iPad", ua):
        device = "tablet"

    browser = next((b for b in _BROWSERS if b in ua), "Unknown")
    os_name = next((label for token, label in _OPERATING_SYSTEMS if token in ua), "Unknown")
    return {"type": device, "browser": browser, "os": os_name}


def referer_domain(referer: str | None) -> str | None:
    if not referer:
        return None
    host = urlparse(referer).netloc
    return host or None


class ViewService:
    """浏览统计服务"""

    @staticmethod
    async def record_view(
        db: AsyncSession,
        news_id: int,
        identity: Identity,
        user_agent: str | None = None,
        referer: str | None = None,
    ) -> NewsView:
        """追加浏览事件并原子递增新闻浏览量"""
        view = NewsView(
            news_id=int(news_id),
            user_id=identity.user_id if isinstance(identity, Registered) else None,
            ip_address=None if isinstance(identity, Registered) else identity.ip,
            user_agent=(user_agent or "")[:500] or None,
            referer=(referer or "")[:500] or None,
            device_info=parse_device_info(user_agent),
        )
        db.add(view)
        await db.execute(
            update(News)
            .where(News.id == int(news_id))
            .values(views_count=News.views_count + 1)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return view

    @staticmethod
    async def stats_for_news(db: AsyncSession, news_id: int) -> dict[str, int]:
        now = utcnow()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        base = NewsView.news_id == int(news_id)

        async def _count(*criteria) -> int:
            result = await db.execute(select(func.count(NewsView.id)).where(base, *criteria))
            return int(result.scalar() or 0)

        unique_ips = await db.execute(
            select(func.count(distinct(NewsView.ip_address))).where(base, NewsView.ip_address.is_not(None))
        )
        registered = await db.execute(
            select(func.count(distinct(NewsView.user_id))).where(base, NewsView.user_id.is_not(None))
        )
        return {
            "total_views": await _count(),
            "unique_ips": int(unique_ips.scalar() or 0),
            "registered_users": int(registered.scalar() or 0),
            "today": await _count(NewsView.viewed_at >= start_of_day),
            "this_week": await _count(NewsView.viewed_at >= now - timedelta(days=7)),
            "this_month": await _count(NewsView.viewed_at >= now - timedelta(days=30)),
        }

    @staticmethod
    async def analytics(db: AsyncSession, news_id: int | None = None, days: int = 30) -> dict[str, Any]:
        """按天浏览量、设备与浏览器分布"""
        since = utcnow() - timedelta(days=int(days))
        criteria = [NewsView.viewed_at >= since]
        if news_id is not None:
            criteria.append(NewsView.news_id == int(news_id))

        day = func.date(NewsView.viewed_at)
        daily_result = await db.execute(
            select(day.label("day"), func.count(NewsView.id)).where(*criteria).group_by(day).order_by(day)
        )
        daily = [{"date": str(d), "views": int(c)} for d, c in daily_result.all()]

        info_result = await db.execute(select(NewsView.device_info).where(*criteria))
        devices: Counter[str] = Counter()
        browsers: Counter[str] = Counter()
        for info in info_result.scalars().all():
            data = info or {}
            devices[str(data.get("type") or "unknown")] += 1
            browsers[str(data.get("browser") or "Unknown")] += 1

        return {
            "days": int(days),
            "daily": daily,
            "devices": dict(devices),
            "browsers": dict(browsers),
        }

    @staticmethod
    async def trending_articles(db: AsyncSession, days: int = 7, limit: int = 10) -> list[tuple[News, int]]:
        return await news_service.trending(db, days=days, limit=limit)

    @staticmethod
    async def clean_old_records(db: AsyncSession, days: int = 90) -> int:
        cutoff = utcnow() - timedelta(days=int(days))
        result = await db.execute(delete(NewsView).where(NewsView.viewed_at < cutoff))
        await db.commit()
        deleted = int(result.rowcount or 0)
        logger.info("old news views cleaned days=%s deleted=%s", days, deleted)
        return deleted


view_service = ViewService()
