"""API路由"""

from fastapi import APIRouter

from . import ads, categories, comments, media, news, reactions, rss, settings, tags

api_router = APIRouter()

api_router.include_router(settings.router)
api_router.include_router(categories.router)
api_router.include_router(tags.router)
api_router.include_router(media.router)
api_router.include_router(news.router)
api_router.include_router(comments.router)
api_router.include_router(reactions.router)
api_router.include_router(rss.router)
api_router.include_router(ads.router)
