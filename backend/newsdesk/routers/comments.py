"""评论API路由"""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.comment import (
    CommentCreate, CommentUpdate, CommentResponse, CommentWithReplies,
    CommentAdminItem, CommentListResponse, CommentAdminListResponse, CommentSubmitResponse,
)
from ..schemas.common import BulkActionRequest, BulkActionResponse, MessageResponse
from ..services.comment_service import comment_service
from ..services.news_service import news_service
from ..utils.deps import get_client_ip, get_current_user, get_current_user_optional, require_editor
from ..utils.identity import identity_for

router = APIRouter(tags=["评论"])


# ============ 公开接口 ============

@router.get("/news/{news_id}/comments", response_model=CommentListResponse, summary="文章评论")
async def list_news_comments(
    news_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    news = await news_service.get_published(db, news_id)
    rows = await comment_service.approved_for_news(db, news.id)
    items = [
        CommentWithReplies(
            **CommentResponse.model_validate(comment).model_dump(),
            replies=[CommentResponse.model_validate(r) for r in replies],
        )
        for comment, replies in rows
    ]
    return CommentListResponse(items=items, total=len(items))


@router.post("/news/{news_id}/comments", response_model=CommentSubmitResponse, status_code=201, summary="发表评论")
async def submit_comment(
    news_id: int,
    data: CommentCreate,
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User | None, Depends(get_current_user_optional)] = None,
):
    identity = identity_for(current_user, get_client_ip(request), data.guest_name, data.guest_email)
    comment = await comment_service.submit(
        db, news_id, data.content, identity, parent_id=data.parent_id, actor=current_user
    )
    message = (
        "Comment posted successfully."
        if comment.status == "approved"
        else "Comment submitted and is awaiting moderation."
    )
    return CommentSubmitResponse(comment=CommentResponse.model_validate(comment), message=message)


@router.post("/comments/{comment_id}/like", response_model=CommentResponse, summary="点赞评论")
async def like_comment(
    comment_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(get_current_user)],
):
    return await comment_service.like(db, comment_id)


@router.get("/comments/{comment_id}/thread", response_model=list[CommentResponse], summary="评论祖先链")
async def get_comment_thread(
    comment_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await comment_service.get_thread(db, comment_id)


@router.get("/comments/{comment_id}/replies", response_model=list[CommentResponse], summary="评论全部回复")
async def get_comment_replies(
    comment_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await comment_service.get_descendants(db, comment_id)


# ============ 登录用户 ============

@router.put("/comments/{comment_id}", response_model=CommentResponse, summary="编辑评论")
async def update_comment(
    comment_id: int,
    data: CommentUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    return await comment_service.update(db, comment_id, data.content, current_user)


@router.delete("/comments/{comment_id}", response_model=MessageResponse, summary="删除评论")
async def delete_comment(
    comment_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
):
    await comment_service.delete(db, comment_id, current_user)
    return MessageResponse(message="Comment deleted")


# ============ 审核接口 ============

@router.get("/comments", response_model=CommentAdminListResponse, summary="评论审核列表")
async def admin_list_comments(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
    status: str | None = None,
    news_id: int | None = None,
):
    items, total = await comment_service.get_admin_list(db, page, page_size, status=status, news_id=news_id)
    return CommentAdminListResponse(
        items=[CommentAdminItem.model_validate(c) for c in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/comments/bulk", response_model=BulkActionResponse, summary="批量审核")
async def bulk_comments(
    data: BulkActionRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await comment_service.bulk_action(db, data.action, data.selected)


@router.post("/comments/{comment_id}/approve", response_model=CommentResponse, summary="通过")
async def approve_comment(
    comment_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await comment_service.approve(db, comment_id)


@router.post("/comments/{comment_id}/reject", response_model=CommentResponse, summary="拒绝")
async def reject_comment(
    comment_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await comment_service.reject(db, comment_id)


@router.post("/comments/{comment_id}/spam", response_model=CommentResponse, summary="标记为垃圾评论")
async def spam_comment(
    comment_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await comment_service.mark_spam(db, comment_id)


@router.post("/comments/{comment_id}/pin", response_model=CommentResponse, summary="切换置顶")
async def pin_comment(
    comment_id: int,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_editor)],
):
    return await comment_service.toggle_pin(db, comment_id)
