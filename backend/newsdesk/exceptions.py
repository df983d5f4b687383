"""领域异常

服务层只抛出这里定义的异常，路由层通过 main.py 中注册的处理器
统一转换为 ``{"detail": message}`` JSON 响应。
"""


class DomainError(Exception):
    """领域错误基类"""
    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    """输入不合法（枚举值错误、父级无效、URL格式错误等）"""
    status_code = 400


class ConflictError(DomainError):
    """与现有数据冲突（重复slug/url、存在依赖记录等）"""
    status_code = 409


class CircularReferenceError(ConflictError):
    """分类父级形成循环"""


class NotFoundError(DomainError):
    """资源不存在"""
    status_code = 404


class PermissionDeniedError(DomainError):
    """无权执行该操作"""
    status_code = 403


class CommentsClosedError(PermissionDeniedError):
    """文章不接受评论"""


class TransportError(DomainError):
    """RSS抓取的HTTP错误或超时"""
    status_code = 502


class FormatError(DomainError):
    """XML无法解析或不支持的订阅格式"""
    status_code = 422


class StorageError(DomainError):
    """写库失败（唯一约束冲突、数据库不可用等）"""
    status_code = 500
