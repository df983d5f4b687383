"""设置相关的Pydantic模式"""
from typing import Any, ClassVar
from pydantic import BaseModel, Field, ConfigDict


class SettingUpsert(BaseModel):
    """写入设置"""
    value: Any = None
    type: str = Field(default="string", description="string/integer/float/boolean/array/object")
    description: str | None = None
    group: str | None = Field(None, max_length=50)
    is_public: bool | None = None
    is_autoload: bool | None = None
    sort_order: int | None = None


class SettingResponse(BaseModel):
    key: str
    value: Any = None
    decoded_value: Any = None
    type: str
    description: str | None = None
    group: str
    is_public: bool
    is_autoload: bool
    sort_order: int = 0

    model_config: ClassVar[ConfigDict] = ConfigDict(from_attributes=True)
