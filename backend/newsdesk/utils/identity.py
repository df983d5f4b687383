"""访问者身份

评论与点赞的归属要么是注册用户，要么是以IP区分的匿名访客，调用方必须显式处理两种情况。
"""
from dataclasses import dataclass
from typing import TypeAlias

from fastapi import Request

from ..models.user import User


@dataclass(frozen=True)
class Registered:
    user_id: int


@dataclass(frozen=True)
class Anonymous:
    ip: str
    name: str | None = None
    email: str | None = None


Identity: TypeAlias = Registered | Anonymous


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def identity_for(
    user: User | None,
    ip: str,
    name: str | None = None,
    email: str | None = None,
) -> Identity:
    if user is not None:
        return Registered(user_id=int(user.id))
    return Anonymous(ip=ip, name=name, email=email)


def identifier(identity: Identity) -> str:
    """唯一标识字符串：user:{id} 或 ip:{ip}"""
    if isinstance(identity, Registered):
        return f"user:{identity.user_id}"
    return f"ip:{identity.ip}"
