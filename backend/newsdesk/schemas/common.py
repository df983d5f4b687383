"""通用模式"""
from pydantic import BaseModel, Field


class BulkActionRequest(BaseModel):
    """批量操作请求"""
    action: str = Field(..., min_length=1, max_length=30, description="操作名称")
    selected: list[int] = Field(..., min_length=1, description="选中的ID列表")


class BulkItemResult(BaseModel):
    id: int
    success: bool
    error: str | None = None


class BulkActionResponse(BaseModel):
    """批量操作结果"""
    action: str
    processed: int
    failed: int
    results: list[BulkItemResult]


class MessageResponse(BaseModel):
    message: str
