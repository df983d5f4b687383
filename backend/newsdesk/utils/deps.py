"""依赖注入"""
import logging
from typing import Annotated
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from ..database import get_db
from ..models.user import User
from .security import decode_token
from .permissions import Role, has_any_role
from .identity import client_ip

security = HTTPBearer(auto_error=False)

logger = logging.getLogger(__name__)


async def get_current_user(
    db: Annotated[AsyncSession, Depends(get_db)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
) -> User:
    """获取当前登录用户"""
    if not credentials:
        logger.info("auth: missing credentials")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)
    if payload is None:
        logger.info("auth: token decode failed")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    sub = payload.get("sub")
    try:
        user_id = int(str(sub))
    except (TypeError, ValueError):
        logger.info("auth: token sub invalid")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        logger.info("auth: user not found (id=%s)", user_id)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User is disabled",
        )

    return user


async def get_current_user_optional(
    db: Annotated[AsyncSession, Depends(get_db)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
) -> User | None:
    """获取当前用户（可选，未登录返回None）"""
    if not credentials:
        return None

    try:
        return await get_current_user(db=db, credentials=credentials)
    except HTTPException:
        return None


async def require_admin(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    """要求管理员权限"""
    if not has_any_role(current_user, [Role.ADMIN]):
        logger.warning("权限检查失败: 用户 %s (role=%s) 尝试访问管理员资源", current_user.username, current_user.role)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return current_user


async def require_editor(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    """要求编辑或管理员权限"""
    if not has_any_role(current_user, [Role.EDITOR, Role.ADMIN]):
        logger.warning("权限检查失败: 用户 %s (role=%s) 尝试访问编辑资源", current_user.username, current_user.role)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Editor privileges required",
        )
    return current_user


async def require_author(current_user: Annotated[User, Depends(get_current_user)]) -> User:
    """要求作者及以上权限"""
    if not has_any_role(current_user, [Role.AUTHOR, Role.EDITOR, Role.ADMIN]):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Author privileges required",
        )
    return current_user


def get_client_ip(request: Request) -> str:
    """客户端IP"""
    return client_ip(request)
