"""站点设置服务

整表读取后缓存在 cache_service 的 ``app_settings`` 键下；任何写操作都会清空缓存，
下一次读取时重新计算。
"""
import json
import logging
from typing import Any

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings
from ..exceptions import ValidationError
from ..models.setting import Setting
from .cache_service import cache_service

logger = logging.getLogger(__name__)

CACHE_KEY = "app_settings"

SETTING_TYPES: tuple[str, ...] = (
    "string", "text", "integer", "number", "float", "decimal", "boolean", "array", "object",
)

DEFAULT_SETTINGS: dict[str, dict[str, Any]] = {
    "site_name": {
        "value": "News Website",
        "type": "string",
        "description": "The name of the website",
        "group": "general",
        "is_public": True,
        "is_autoload": True,
    },
    "site_description": {
        "value": "Latest news and articles",
        "type": "string",
        "description": "Website description for SEO",
        "group": "general",
        "is_public": True,
        "is_autoload": True,
    },
    "site_logo": {
        "value": "",
        "type": "string",
        "description": "Website logo URL",
        "group": "general",
        "is_public": True,
        "is_autoload": True,
    },
    "articles_per_page": {
        "value": 12,
        "type": "integer",
        "description": "Number of articles per page",
        "group": "display",
        "is_public": True,
        "is_autoload": True,
    },
    "enable_comments": {
        "value": True,
        "type": "boolean",
        "description": "Enable comments on articles",
        "group": "features",
        "is_public": True,
        "is_autoload": True,
    },
    "moderate_comments": {
        "value": True,
        "type": "boolean",
        "description": "Moderate comments before publishing",
        "group": "features",
        "is_public": False,
        "is_autoload": True,
    },
    "enable_rss": {
        "value": True,
        "type": "boolean",
        "description": "Enable RSS feeds",
        "group": "features",
        "is_public": True,
        "is_autoload": True,
    },
}

_OPTION_FIELDS: tuple[str, ...] = ("description", "group", "is_public", "is_autoload", "sort_order")


def _to_bool(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in {"", "0", "false", "no", "off"}
    return bool(value)


def _to_int(value: object) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return int(value)
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError):
        return 0


def _to_float(value: object) -> float:
    try:
        return float(str(value).strip()) if not isinstance(value, (int, float)) else float(value)
    except (TypeError, ValueError):
        return 0.0


def encode_value(value: object, type_: str) -> object:
    """按类型编码后入库"""
    if type_ == "boolean":
        return _to_bool(value)
    if type_ in ("number", "integer"):
        return _to_int(value)
    if type_ in ("float", "decimal"):
        return _to_float(value)
    if type_ == "array":
        if isinstance(value, list):
            return value
        if isinstance(value, tuple):
            return list(value)
        return [value]
    if type_ == "object":
        if isinstance(value, (dict, list)):
            return value
        return [value]
    return "" if value is None else str(value)


def decode_value(value: object, type_: str) -> object:
    """按类型解码"""
    if type_ == "boolean":
        return _to_bool(value)
    if type_ in ("number", "integer"):
        return _to_int(value)
    if type_ in ("float", "decimal"):
        return _to_float(value)
    if type_ in ("array", "object"):
        if isinstance(value, str):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return value
        return value
    return value


def _serialize(setting: Setting) -> dict[str, Any]:
    return {
        "value": setting.value,
        "decoded_value": decode_value(setting.value, setting.type),
        "type": setting.type,
        "description": setting.description,
        "group": setting.group,
        "is_public": bool(setting.is_public),
        "is_autoload": bool(setting.is_autoload),
        "sort_order": int(setting.sort_order or 0),
    }


class SettingsService:
    """设置服务"""

    @staticmethod
    def _validate_type(type_: str) -> str:
        t = str(type_ or "string").strip().lower()
        if t not in SETTING_TYPES:
            raise ValidationError(f"Invalid setting type: {type_}")
        return t

    @staticmethod
    async def get_all(db: AsyncSession) -> dict[str, dict[str, Any]]:
        """读取全部设置（不走缓存）"""
        result = await db.execute(select(Setting).order_by(Setting.group, Setting.sort_order, Setting.key))
        return {s.key: _serialize(s) for s in result.scalars().all()}

    @staticmethod
    async def get_all_cached(db: AsyncSession) -> dict[str, dict[str, Any]]:
        return await cache_service.remember_json(
            CACHE_KEY,
            get_settings().settings_cache_ttl_seconds,
            lambda: SettingsService.get_all(db),
        )

    @staticmethod
    async def get(db: AsyncSession, key: str, default: object = None) -> object:
        settings = await SettingsService.get_all_cached(db)
        if key in settings:
            return settings[key]["decoded_value"]
        return default

    @staticmethod
    async def get_bool(db: AsyncSession, key: str, default: bool) -> bool:
        return _to_bool(await SettingsService.get(db, key, default))

    @staticmethod
    async def get_int(db: AsyncSession, key: str, default: int) -> int:
        value = await SettingsService.get(db, key, default)
        parsed = _to_int(value)
        return parsed if parsed > 0 else default

    @staticmethod
    async def _upsert(db: AsyncSession, key: str, value: object, type_: str, options: dict[str, Any]) -> Setting:
        t = SettingsService._validate_type(type_)
        result = await db.execute(select(Setting).where(Setting.key == key))
        setting = result.scalar_one_or_none()
        if setting is None:
            setting = Setting(key=key, group="general", is_public=False, is_autoload=False, sort_order=0)
            db.add(setting)
        setting.value = encode_value(value, t)
        setting.type = t
        for field in _OPTION_FIELDS:
            if field in options and options[field] is not None:
                setattr(setting, field, options[field])
        return setting

    @staticmethod
    async def set(db: AsyncSession, key: str, value: object, type_: str = "string", **options: Any) -> Setting:
        """写入（不存在则创建）"""
        key = str(key or "").strip()
        if not key:
            raise ValidationError("Setting key is required")
        setting = await SettingsService._upsert(db, key, value, type_, options)
        await db.commit()
        await db.refresh(setting)
        await SettingsService.clear_cache()
        return setting

    @staticmethod
    async def set_many(db: AsyncSession, items: dict[str, dict[str, Any]]) -> int:
        count = 0
        for key, config in items.items():
            conf = dict(config)
            value = conf.pop("value", None)
            type_ = conf.pop("type", "string")
            _ = await SettingsService._upsert(db, key, value, type_, conf)
            count += 1
        await db.commit()
        await SettingsService.clear_cache()
        return count

    @staticmethod
    async def has(db: AsyncSession, key: str) -> bool:
        result = await db.execute(select(Setting.id).where(Setting.key == key))
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def forget(db: AsyncSession, key: str) -> bool:
        result = await db.execute(delete(Setting).where(Setting.key == key))
        await db.commit()
        await SettingsService.clear_cache()
        return (result.rowcount or 0) > 0

    @staticmethod
    async def _decoded_where(db: AsyncSession, *criteria) -> dict[str, object]:
        result = await db.execute(select(Setting).where(*criteria).order_by(Setting.sort_order, Setting.key))
        return {s.key: decode_value(s.value, s.type) for s in result.scalars().all()}

    @staticmethod
    async def get_group(db: AsyncSession, group: str) -> dict[str, object]:
        return await SettingsService._decoded_where(db, Setting.group == group)

    @staticmethod
    async def get_public(db: AsyncSession) -> dict[str, object]:
        return await SettingsService._decoded_where(db, Setting.is_public == True)

    @staticmethod
    async def get_autoload(db: AsyncSession) -> dict[str, object]:
        return await SettingsService._decoded_where(db, Setting.is_autoload == True)

    @staticmethod
    async def clear_cache() -> None:
        _ = await cache_service.delete(CACHE_KEY)
        logger.info("settings cache cleared")

    @staticmethod
    async def initialize_defaults(db: AsyncSession) -> int:
        """写入缺失的默认设置，返回新增数量"""
        result = await db.execute(select(Setting.key))
        existing = set(result.scalars().all())
        created = 0
        for key, config in DEFAULT_SETTINGS.items():
            if key in existing:
                continue
            conf = dict(config)
            value = conf.pop("value")
            type_ = conf.pop("type")
            _ = await SettingsService._upsert(db, key, value, type_, conf)
            created += 1
        if created:
            await db.commit()
            await SettingsService.clear_cache()
            logger.info("default settings initialized count=%s", created)
        return created


settings_service = SettingsService()
