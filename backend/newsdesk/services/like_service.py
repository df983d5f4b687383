"""点赞/点踩服务层"""
import logging
from typing import Any

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import ConflictError, ValidationError
from ..models.like import Like, REACTION_TYPES
from ..utils.identity import Anonymous, Identity, Registered, identifier
from .news_service import news_service

logger = logging.getLogger(__name__)


class LikeService:
    """点赞服务：每个 (新闻, 身份) 至多一条记录，由数据库唯一约束兜底"""

    @staticmethod
    def _identity_condition(identity: Identity):
        if isinstance(identity, Registered):
            return Like.user_id == identity.user_id
        if isinstance(identity, Anonymous):
            return Like.visitor_ip == identity.ip
        raise ValidationError("Unknown identity")

    @staticmethod
    async def find(db: AsyncSession, news_id: int, identity: Identity) -> Like | None:
        result = await db.execute(
            select(Like)
            .where(Like.news_id == int(news_id), LikeService._identity_condition(identity))
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def reaction_of(db: AsyncSession, news_id: int, identity: Identity | None) -> str | None:
        if identity is None:
            return None
        like = await LikeService.find(db, news_id, identity)
        return like.type if like is not None else None

    @staticmethod
    async def counts(db: AsyncSession, news_id: int) -> dict[str, int]:
        result = await db.execute(
            select(Like.type, func.count(Like.id)).where(Like.news_id == int(news_id)).group_by(Like.type)
        )
        by_type = {str(t): int(c) for t, c in result.all()}
        return {"likes_count": by_type.get("like", 0), "dislikes_count": by_type.get("dislike", 0)}

    @staticmethod
    def _new_like(news_id: int, reaction_type: str, identity: Identity, user_agent: str | None) -> Like:
        like = Like(news_id=int(news_id), type=reaction_type, user_agent=(user_agent or None))
        if isinstance(identity, Registered):
            like.user_id = identity.user_id
        else:
            like.visitor_ip = identity.ip
        return like

    @staticmethod
    async def set_reaction(
        db: AsyncSession,
        news_id: int,
        reaction_type: str,
        identity: Identity,
        user_agent: str | None = None,
    ) -> dict[str, Any]:
        """
        设置反应

        无记录则新建；类型相同则删除（取消）；类型不同则原地切换。
        并发新建触发唯一约束时回滚并按已存在的记录重试一次。
        """
        if reaction_type not in REACTION_TYPES:
            raise ValidationError(f"Invalid reaction type: {reaction_type}")
        news_id = int(news_id)
        _ = await news_service.get_published(db, news_id)

        action: str | None = None
        for _attempt in range(2):
            existing = await LikeService.find(db, news_id, identity)
            if existing is None:
                db.add(LikeService._new_like(news_id, reaction_type, identity, user_agent))
                try:
                    await db.commit()
                except IntegrityError:
                    await db.rollback()
                    logger.info("reaction race detected news_id=%s who=%s, retrying", news_id, identifier(identity))
                    continue
                action = "added"
            elif existing.type == reaction_type:
                await db.delete(existing)
                await db.commit()
                action = "removed"
            else:
                existing.type = reaction_type
                await db.commit()
                action = "changed"
            break

        if action is None:
            raise ConflictError("Reaction could not be recorded, please retry.")

        counts = await LikeService.counts(db, news_id)
        logger.info("reaction %s news_id=%s type=%s who=%s", action, news_id, reaction_type, identifier(identity))
        return {
            "action": action,
            "user_reaction": None if action == "removed" else reaction_type,
            **counts,
        }


like_service = LikeService()
