"""Newsdesk - FastAPI主应用"""
from contextlib import asynccontextmanager
import logging
import asyncio
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .database import AsyncSessionLocal, init_db
from .exceptions import DomainError
from .middleware.logging_middleware import RequestLoggingMiddleware, ErrorLoggingMiddleware
from .routers import api_router
from .services.cache_service import cache_service
from .services.rss_service import rss_service
from .services.settings_service import settings_service
from .utils.logging_config import setup_logging

settings = get_settings()

logger = logging.getLogger(__name__)


async def _rss_scheduler_loop(stop_event: asyncio.Event, interval: float) -> None:
    """定时抓取到期的RSS订阅源"""
    while not stop_event.is_set():
        try:
            async with AsyncSessionLocal() as session:
                results = await rss_service.fetch_due(session)
                if results:
                    logger.info(
                        "定时抓取RSS完成: %s 个订阅源, %s 个失败",
                        len(results),
                        sum(1 for r in results if not r["success"]),
                    )
        except Exception:
            logger.exception("定时抓取RSS失败")
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    _ = app
    setup_logging(settings.log_level, settings.log_dir)
    await init_db()

    if settings.redis_url:
        _ = await cache_service.connect(settings.redis_url)

    async with AsyncSessionLocal() as session:
        _ = await settings_service.initialize_defaults(session)

    stop_event = asyncio.Event()
    scheduler_task: asyncio.Task[None] | None = None
    if settings.rss_scheduler_enabled:
        scheduler_task = asyncio.create_task(
            _rss_scheduler_loop(stop_event, float(settings.rss_scheduler_interval_seconds))
        )
        logger.info("RSS定时抓取已启用 (间隔 %ss)", settings.rss_scheduler_interval_seconds)

    logger.info("数据库初始化完成")

    yield

    stop_event.set()
    if scheduler_task is not None:
        scheduler_task.cancel()
        try:
            await scheduler_task
        except asyncio.CancelledError:
            pass

    await cache_service.disconnect()

    logger.info("应用关闭")


app = FastAPI(
    title=settings.app_name,
    description="""
# Newsdesk API

多语言新闻发布系统：文章、分类、标签、媒体库、评论、点赞、RSS导入导出与广告位。

## 认证方式

使用 JWT Bearer Token 认证，在请求头中添加：
```
Authorization: Bearer <your_token>
```

## 错误码说明

| 状态码 | 说明 |
|--------|------|
| 400 | 请求参数错误 |
| 401 | 未认证 |
| 403 | 权限不足 / 评论已关闭 |
| 404 | 资源不存在 |
| 409 | 数据冲突（重复slug、循环分类、存在依赖记录） |
| 422 | 数据验证失败 / 订阅格式错误 |
| 502 | RSS源请求失败 |
""",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {"name": "站点设置", "description": "键值配置与缓存"},
        {"name": "分类", "description": "分类树与面包屑"},
        {"name": "标签", "description": "标签管理"},
        {"name": "媒体库", "description": "上传文件元数据"},
        {"name": "新闻", "description": "文章发布、检索与统计"},
        {"name": "评论", "description": "评论与审核"},
        {"name": "点赞", "description": "点赞/点踩"},
        {"name": "RSS", "description": "RSS订阅源导入与站点RSS导出"},
        {"name": "广告", "description": "广告位展示与统计"},
    ],
)


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.add_middleware(ErrorLoggingMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """根路由"""
    return {
        "name": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """健康检查"""
    return {"status": "healthy"}
