"""数据库配置"""
import importlib
import logging
from pathlib import Path
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from .config import get_settings

settings = get_settings()

logger = logging.getLogger(__name__)

MODEL_MODULES: tuple[str, ...] = (
    "newsdesk.models.user",
    "newsdesk.models.setting",
    "newsdesk.models.category",
    "newsdesk.models.tag",
    "newsdesk.models.media",
    "newsdesk.models.news",
    "newsdesk.models.comment",
    "newsdesk.models.like",
    "newsdesk.models.rss_feed",
    "newsdesk.models.advertisement",
)

if settings.database_url.startswith("sqlite"):
    parts = settings.database_url.split("///", 1)
    if len(parts) == 2:
        db_path = parts[1]
        if db_path.startswith("./"):
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    future=True
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False
)

class Base(DeclarativeBase):
    pass


def import_models() -> None:
    """导入所有模型模块，确保元数据完整"""
    for module_name in MODEL_MODULES:
        _ = importlib.import_module(module_name)


async def get_db():
    """获取数据库会话"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db() -> None:
    """初始化数据库表"""
    import_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("数据库表已就绪 url=%s", engine.url.render_as_string(hide_password=True))
