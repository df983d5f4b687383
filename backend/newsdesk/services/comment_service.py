"""评论服务层"""
import logging
from datetime import timedelta
from typing import Any

from sqlalchemy import select, func, update, desc
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from ..exceptions import CommentsClosedError, NotFoundError, PermissionDeniedError, ValidationError
from ..models.comment import Comment, COMMENT_STATUSES
from ..models.news import News
from ..models.user import User
from ..utils.identity import Anonymous, Identity, Registered
from ..utils.permissions import is_privileged
from ..utils.timeutil import utcnow
from ..utils.validators import validate_email
from .bulk import ensure_action, run_bulk
from .settings_service import settings_service

logger = logging.getLogger(__name__)

CONTENT_MIN_LENGTH = 3
CONTENT_MAX_LENGTH = 1000
GUEST_NAME_MAX_LENGTH = 100
EDIT_WINDOW = timedelta(minutes=15)
MAX_THREAD_DEPTH = 100


class CommentService:
    """评论服务"""

    @staticmethod
    async def get(db: AsyncSession, comment_id: int, include_deleted: bool = False) -> Comment:
        comment = await db.get(Comment, int(comment_id))
        if comment is None or (comment.deleted_at is not None and not include_deleted):
            raise NotFoundError("Comment not found")
        return comment

    @staticmethod
    def _clean_content(content: str) -> str:
        text = str(content or "").strip()
        if len(text) < CONTENT_MIN_LENGTH or len(text) > CONTENT_MAX_LENGTH:
            raise ValidationError(
                f"Comment must be between {CONTENT_MIN_LENGTH} and {CONTENT_MAX_LENGTH} characters."
            )
        return text

    @staticmethod
    async def recompute_replies_count(db: AsyncSession, comment_id: int | None) -> None:
        """replies_count 唯一的写入入口：已审核且未删除的直接子评论数"""
        if comment_id is None:
            return
        child = aliased(Comment)
        approved_children = (
            select(func.count(child.id))
            .where(
                child.parent_id == int(comment_id),
                child.status == "approved",
                child.deleted_at.is_(None),
            )
            .scalar_subquery()
        )
        await db.execute(
            update(Comment)
            .where(Comment.id == int(comment_id))
            .values(replies_count=approved_children)
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    async def _finish(db: AsyncSession, comment: Comment) -> Comment:
        await CommentService.recompute_replies_count(db, comment.parent_id)
        await db.commit()
        await db.refresh(comment)
        if comment.parent_id is not None:
            parent = await db.get(Comment, comment.parent_id)
            if parent is not None:
                await db.refresh(parent)
        return comment

    @staticmethod
    async def submit(
        db: AsyncSession,
        news_id: int,
        content: str,
        identity: Identity,
        parent_id: int | None = None,
        actor: User | None = None,
    ) -> Comment:
        """发表评论"""
        news = await db.get(News, int(news_id))
        if news is None or news.deleted_at is not None:
            raise NotFoundError("News not found")
        if not news.allows_comments or not await settings_service.get_bool(db, "enable_comments", True):
            raise CommentsClosedError("Comments are not allowed for this article.")

        text = CommentService._clean_content(content)

        comment = Comment(news_id=news.id, content=text)
        if isinstance(identity, Registered):
            comment.user_id = identity.user_id
        elif isinstance(identity, Anonymous):
            name = str(identity.name or "").strip()
            email = str(identity.email or "").strip()
            if not name or len(name) > GUEST_NAME_MAX_LENGTH:
                raise ValidationError("Guest name is required (max 100 characters).")
            if not email or not validate_email(email):
                raise ValidationError("A valid guest email is required.")
            comment.guest_name = name
            comment.guest_email = email
            comment.ip_address = identity.ip

        if parent_id is not None:
            parent = await db.get(Comment, int(parent_id))
            if parent is None or parent.news_id != news.id or parent.deleted_at is not None:
                raise ValidationError("Invalid parent comment.")
            comment.parent_id = parent.id

        if is_privileged(actor):
            comment.status = "approved"
        elif await settings_service.get_bool(db, "moderate_comments", True):
            comment.status = "pending"
        else:
            comment.status = "approved"

        db.add(comment)
        await db.flush()
        comment = await CommentService._finish(db, comment)
        logger.info("comment submitted id=%s news_id=%s status=%s", comment.id, news.id, comment.status)
        return comment

    @staticmethod
    def can_edit(comment: Comment, actor: User | None) -> bool:
        if actor is None:
            return False
        if is_privileged(actor):
            return True
        if comment.user_id is None or comment.user_id != actor.id:
            return False
        return utcnow() - comment.created_at <= EDIT_WINDOW

    @staticmethod
    def can_delete(comment: Comment, actor: User | None) -> bool:
        if actor is None:
            return False
        if is_privileged(actor):
            return True
        return comment.user_id is not None and comment.user_id == actor.id

    @staticmethod
    async def update(db: AsyncSession, comment_id: int, content: str, actor: User | None) -> Comment:
        comment = await CommentService.get(db, comment_id)
        if not CommentService.can_edit(comment, actor):
            raise PermissionDeniedError("You can no longer edit this comment.")
        comment.content = CommentService._clean_content(content)
        await db.commit()
        await db.refresh(comment)
        return comment

    @staticmethod
    async def delete(db: AsyncSession, comment_id: int, actor: User | None) -> None:
        comment = await CommentService.get(db, comment_id)
        if not CommentService.can_delete(comment, actor):
            raise PermissionDeniedError("You are not allowed to delete this comment.")
        await CommentService._soft_delete(db, comment)

    @staticmethod
    async def _soft_delete(db: AsyncSession, comment: Comment) -> None:
        comment.deleted_at = utcnow()
        await db.flush()
        _ = await CommentService._finish(db, comment)
        logger.info("comment deleted id=%s", comment.id)

    @staticmethod
    async def set_status(db: AsyncSession, comment_id: int, status: str) -> Comment:
        if status not in COMMENT_STATUSES:
            raise ValidationError(f"Invalid status: {status}")
        comment = await CommentService.get(db, comment_id)
        comment.status = status
        await db.flush()
        return await CommentService._finish(db, comment)

    @staticmethod
    async def approve(db: AsyncSession, comment_id: int) -> Comment:
        return await CommentService.set_status(db, comment_id, "approved")

    @staticmethod
    async def reject(db: AsyncSession, comment_id: int) -> Comment:
        return await CommentService.set_status(db, comment_id, "rejected")

    @staticmethod
    async def mark_spam(db: AsyncSession, comment_id: int) -> Comment:
        return await CommentService.set_status(db, comment_id, "spam")

    @staticmethod
    async def set_pinned(db: AsyncSession, comment_id: int, pinned: bool | None = None) -> Comment:
        """pinned 为 None 时切换置顶状态"""
        comment = await CommentService.get(db, comment_id)
        comment.is_pinned = (not comment.is_pinned) if pinned is None else bool(pinned)
        await db.commit()
        await db.refresh(comment)
        return comment

    @staticmethod
    async def pin(db: AsyncSession, comment_id: int) -> Comment:
        return await CommentService.set_pinned(db, comment_id, True)

    @staticmethod
    async def unpin(db: AsyncSession, comment_id: int) -> Comment:
        return await CommentService.set_pinned(db, comment_id, False)

    @staticmethod
    async def toggle_pin(db: AsyncSession, comment_id: int) -> Comment:
        return await CommentService.set_pinned(db, comment_id)

    @staticmethod
    async def like(db: AsyncSession, comment_id: int) -> Comment:
        comment = await CommentService.get(db, comment_id)
        await db.execute(
            update(Comment)
            .where(Comment.id == comment.id)
            .values(likes_count=Comment.likes_count + 1)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        await db.refresh(comment)
        return comment

    @staticmethod
    async def get_thread(db: AsyncSession, comment_id: int) -> list[Comment]:
        """祖先链（根在前），最后一个是评论本身"""
        comment = await CommentService.get(db, comment_id, include_deleted=True)
        chain = [comment]
        seen = {comment.id}
        current = comment
        while current.parent_id is not None and len(chain) <= MAX_THREAD_DEPTH:
            if current.parent_id in seen:
                break
            parent = await db.get(Comment, current.parent_id)
            if parent is None:
                break
            seen.add(parent.id)
            chain.append(parent)
            current = parent
        chain.reverse()
        return chain

    @staticmethod
    async def depth(db: AsyncSession, comment_id: int) -> int:
        return len(await CommentService.get_thread(db, comment_id)) - 1

    @staticmethod
    async def get_descendants(db: AsyncSession, comment_id: int) -> list[Comment]:
        """完整子树（深度优先，不含已删除）"""
        root = await CommentService.get(db, comment_id, include_deleted=True)
        out: list[Comment] = []
        seen: set[int] = {root.id}

        async def _walk(parent_id: int, depth: int) -> None:
            if depth > MAX_THREAD_DEPTH:
                return
            result = await db.execute(
                select(Comment)
                .where(Comment.parent_id == parent_id, Comment.deleted_at.is_(None))
                .order_by(Comment.created_at, Comment.id)
            )
            for child in result.scalars().all():
                if child.id in seen:
                    continue
                seen.add(child.id)
                out.append(child)
                await _walk(child.id, depth + 1)

        await _walk(root.id, 0)
        return out

    @staticmethod
    async def approved_for_news(db: AsyncSession, news_id: int) -> list[tuple[Comment, list[Comment]]]:
        """已审核的顶级评论（置顶优先、最新在前）及其已审核回复"""
        result = await db.execute(
            select(Comment)
            .where(
                Comment.news_id == int(news_id),
                Comment.parent_id.is_(None),
                Comment.status == "approved",
                Comment.deleted_at.is_(None),
            )
            .order_by(desc(Comment.is_pinned), desc(Comment.created_at), desc(Comment.id))
        )
        top_level = list(result.scalars().all())
        if not top_level:
            return []
        replies_result = await db.execute(
            select(Comment)
            .where(
                Comment.parent_id.in_([c.id for c in top_level]),
                Comment.status == "approved",
                Comment.deleted_at.is_(None),
            )
            .order_by(Comment.created_at, Comment.id)
        )
        replies: dict[int, list[Comment]] = {}
        for reply in replies_result.scalars().all():
            replies.setdefault(int(reply.parent_id or 0), []).append(reply)
        return [(c, replies.get(c.id, [])) for c in top_level]

    @staticmethod
    async def get_admin_list(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 20,
        status: str | None = None,
        news_id: int | None = None,
    ) -> tuple[list[Comment], int]:
        conditions = [Comment.deleted_at.is_(None)]
        if status:
            if status not in COMMENT_STATUSES:
                raise ValidationError(f"Invalid status: {status}")
            conditions.append(Comment.status == status)
        if news_id is not None:
            conditions.append(Comment.news_id == int(news_id))
        count_result = await db.execute(select(func.count(Comment.id)).where(*conditions))
        total = int(count_result.scalar() or 0)
        result = await db.execute(
            select(Comment)
            .where(*conditions)
            .order_by(desc(Comment.created_at), desc(Comment.id))
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def bulk_action(db: AsyncSession, action: str, ids: list[int]) -> dict[str, Any]:
        a = ensure_action(action, {"approve", "reject", "spam", "delete"})
        status_for = {"approve": "approved", "reject": "rejected", "spam": "spam"}

        async def _handle(comment_id: int) -> None:
            if a == "delete":
                comment = await CommentService.get(db, comment_id)
                await CommentService._soft_delete(db, comment)
            else:
                _ = await CommentService.set_status(db, comment_id, status_for[a])

        return await run_bulk(a, ids, _handle)


comment_service = CommentService()
