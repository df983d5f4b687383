"""点赞/点踩API路由"""
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.like import ReactionRequest, ReactionCounts, ReactionResponse
from ..services.like_service import like_service
from ..services.news_service import news_service
from ..utils.deps import get_client_ip, get_current_user_optional
from ..utils.identity import identity_for

router = APIRouter(prefix="/news", tags=["点赞"])


@router.post("/{news_id}/reaction", response_model=ReactionResponse, summary="点赞或点踩（再次提交同类型则取消）")
async def set_reaction(
    news_id: int,
    data: ReactionRequest,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User | None, Depends(get_current_user_optional)] = None,
):
    identity = identity_for(current_user, get_client_ip(request))
    return await like_service.set_reaction(
        db, news_id, data.type, identity, user_agent=request.headers.get("user-agent")
    )


@router.get("/{news_id}/reaction", response_model=ReactionCounts, summary="反应统计")
async def get_reaction(
    news_id: int,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User | None, Depends(get_current_user_optional)] = None,
):
    news = await news_service.get_published(db, news_id)
    identity = identity_for(current_user, get_client_ip(request))
    counts = await like_service.counts(db, news.id)
    return ReactionCounts(**counts, user_reaction=await like_service.reaction_of(db, news.id, identity))
