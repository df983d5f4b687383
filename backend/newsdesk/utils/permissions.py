"""角色与权限"""
import logging

from ..models.user import User

logger = logging.getLogger(__name__)


class Role:
    """角色常量"""
    USER = "user"        # 普通读者
    AUTHOR = "author"    # 作者
    EDITOR = "editor"    # 编辑
    ADMIN = "admin"      # 管理员


ROLES: tuple[str, ...] = (Role.USER, Role.AUTHOR, Role.EDITOR, Role.ADMIN)

# 评论免审、可编辑/删除任意评论的角色
PRIVILEGED_ROLES: tuple[str, ...] = (Role.ADMIN, Role.EDITOR)


def has_role(user: User | None, role: str) -> bool:
    """检查用户是否拥有指定角色"""
    if not user:
        return False
    return user.role == role


def has_any_role(user: User | None, roles: list[str] | tuple[str, ...]) -> bool:
    """检查用户是否拥有任一指定角色"""
    if not user:
        return False
    return user.role in roles


def is_privileged(user: User | None) -> bool:
    """管理员或编辑"""
    return has_any_role(user, PRIVILEGED_ROLES)


def is_owner_or_privileged(user: User | None, resource_user_id: int | None) -> bool:
    """资源所有者或管理员/编辑"""
    if not user:
        return False
    if is_privileged(user):
        return True
    return resource_user_id is not None and user.id == resource_user_id
