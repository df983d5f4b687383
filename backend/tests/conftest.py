"""Pytest配置文件"""
import inspect
import sys
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from newsdesk.main import app
from newsdesk.database import Base, get_db, import_models
from newsdesk.models.category import Category
from newsdesk.models.news import News
from newsdesk.models.user import User
from newsdesk.services import cache_service as cache_module
from newsdesk.utils.security import create_access_token
from newsdesk.utils.timeutil import utcnow

# 使用内存数据库进行测试
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def test_engine():
    """创建测试数据库引擎"""
    import_models()
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """创建测试会话"""
    cache_module.cache_service._connected = False
    cache_module.cache_service._redis = None
    cache_module._memory_cache.clear()
    async_session = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with async_session() as session:
        yield session
    cache_module._memory_cache.clear()


@pytest_asyncio.fixture
async def client(test_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """创建测试客户端"""
    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    transport_kwargs: dict[str, Any] = {"app": app}
    if "lifespan" in inspect.signature(ASGITransport.__init__).parameters:
        transport_kwargs["lifespan"] = "off"
    transport = ASGITransport(**transport_kwargs)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def make_user(test_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    counter = {"n": 0}

    async def _make(role: str = "user", username: str | None = None, **kwargs: Any) -> User:
        counter["n"] += 1
        name = username or f"{role}{counter['n']}"
        user = User(username=name, email=f"{name}@example.com", role=role, **kwargs)
        test_session.add(user)
        await test_session.commit()
        await test_session.refresh(user)
        return user

    return _make


@pytest_asyncio.fixture
async def make_category(test_session: AsyncSession) -> Callable[..., Awaitable[Category]]:
    async def _make(name: str, parent: Category | None = None, **kwargs: Any) -> Category:
        slug = kwargs.pop("slug", None) or name.lower().replace(" ", "-")
        category = Category(name=name, slug=slug, parent_id=parent.id if parent else None, **kwargs)
        test_session.add(category)
        await test_session.commit()
        await test_session.refresh(category)
        return category

    return _make


@pytest_asyncio.fixture
async def make_news(test_session: AsyncSession) -> Callable[..., Awaitable[News]]:
    """默认创建一篇一小时前已发布的新闻"""
    counter = {"n": 0}

    async def _make(title: str | None = None, **kwargs: Any) -> News:
        counter["n"] += 1
        t = title or f"Story {counter['n']}"
        data: dict[str, Any] = {
            "title": t,
            "slug": kwargs.pop("slug", None) or f"story-{counter['n']}",
            "content": "<p>Body text</p>",
            "excerpt": "Body text",
            "status": "published",
            "published_at": utcnow() - timedelta(hours=1),
        }
        data.update(kwargs)
        news = News(**data)
        test_session.add(news)
        await test_session.commit()
        await test_session.refresh(news)
        return news

    return _make


def auth_headers(user: User) -> dict[str, str]:
    """为用户签发令牌并组装请求头"""
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def hours_ago(hours: float) -> datetime:
    return utcnow() - timedelta(hours=hours)
