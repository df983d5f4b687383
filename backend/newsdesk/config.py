"""应用配置"""
import sys
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AliasChoices, Field, field_validator, model_validator
from functools import lru_cache
from typing import ClassVar, cast


def _running_tests() -> bool:
    return "pytest" in sys.modules


class Settings(BaseSettings):
    """应用设置"""
    # 应用配置
    app_name: str = "Newsdesk"
    debug: bool = Field(default_factory=_running_tests)
    site_url: str = "http://localhost:8000"

    # 数据库配置
    database_url: str = "sqlite+aiosqlite:///./data/newsdesk.db"

    # JWT配置
    secret_key: str = Field(
        default="your-super-secret-key-change-in-production",
        validation_alias=AliasChoices("SECRET_KEY", "JWT_SECRET_KEY"),
    )
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440

    cors_allow_origins: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]
    cors_allow_credentials: bool = False

    redis_url: str = ""
    settings_cache_ttl_seconds: int = 3600

    # 日志
    log_level: str = "INFO"
    log_dir: str = "logs"

    # RSS抓取
    rss_fetch_timeout_seconds: float = 30.0
    rss_user_agent: str = "News RSS Reader/1.0"
    rss_scheduler_enabled: bool = False
    rss_scheduler_interval_seconds: float = 60.0

    model_config: ClassVar[SettingsConfigDict] = cast(
        SettingsConfigDict,
        cast(
            object,
            {
                "env_file": None if _running_tests() else ".env",
                "extra": "ignore",
                "from_attributes": True,
            },
        ),
    )

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _parse_cors_allow_origins(cls, value: object):
        if isinstance(value, str):
            parts = [p.strip() for p in value.replace("，", ",").split(",")]
            return [p for p in parts if p]
        return value

    @field_validator("site_url", mode="after")
    @classmethod
    def _strip_site_url(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("rss_scheduler_enabled", mode="before")
    @classmethod
    def _parse_scheduler_enabled(cls, value: object):
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "y", "on"}
        return bool(value)

    @field_validator("debug", mode="before")
    @classmethod
    def _parse_debug(cls, value: object):
        if value is None:
            return bool(_running_tests())
        if isinstance(value, bool):
            return bool(value)
        if isinstance(value, int):
            return bool(int(value))
        if isinstance(value, str):
            s = value.strip().lower()
            if not s:
                return bool(_running_tests())
            if s in {"1", "true", "yes", "y", "on"}:
                return True
            if s in {"0", "false", "no", "n", "off"}:
                return False
            return True
        return bool(_running_tests())

    @model_validator(mode="after")
    def _validate_security(self):
        if _running_tests():
            return self
        insecure_defaults = {
            "your-super-secret-key-change-in-production",
            "your-secret-key-change-in-production",
            "your-secret-key-here",
        }
        if not self.debug:
            if self.secret_key in insecure_defaults or len(self.secret_key) < 32:
                raise ValueError("SECRET_KEY must be set to a secure value when DEBUG is False")
        return self


@lru_cache()
def get_settings() -> Settings:
    """获取缓存的设置实例"""
    return Settings()
