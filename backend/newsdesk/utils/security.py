"""JWT令牌工具

登录与会话由外部认证服务负责；这里只负责签发（测试与内部工具使用）和解析令牌。
"""
import logging
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from ..config import get_settings

logger = logging.getLogger(__name__)


def create_access_token(subject: str | int, expires_delta: timedelta | None = None) -> str:
    """签发访问令牌，sub 为用户ID"""
    settings = get_settings()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode = {"exp": expire, "sub": str(subject)}
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_token(token: str) -> dict[str, object] | None:
    """解析令牌，失败返回 None"""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as e:
        logger.info("token decode failed: %s", e)
        return None
