"""缓存服务

配置了 ``REDIS_URL`` 时写入 Redis，否则（或连接失败时）落到进程内字典。
所有键都带 ``newsdesk:`` 前缀，清理时不会误删同库中其他应用的数据。
"""
import fnmatch
import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

KEY_PREFIX = "newsdesk:"

# 进程内后备存储：完整键 -> (值, 过期时间戳)
_memory_cache: dict[str, tuple[str, float]] = {}


def cache_key(key: str) -> str:
    return key if key.startswith(KEY_PREFIX) else f"{KEY_PREFIX}{key}"


class CacheService:
    """Redis / 内存 双后端缓存"""

    def __init__(self):
        self._redis: redis.Redis | None = None
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def backend(self) -> str:
        return "redis" if self._connected else "memory"

    async def connect(self, redis_url: str) -> bool:
        """连接失败只记警告，后续读写全部走内存"""
        try:
            client = redis.from_url(redis_url, decode_responses=True)
            await client.ping()
        except (RedisError, OSError, ValueError) as e:
            self._redis = None
            self._connected = False
            logger.warning("cache: redis unavailable (%s), falling back to memory", e)
            return False
        self._redis = client
        self._connected = True
        logger.info("cache: redis connected")
        return True

    async def disconnect(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
        self._redis = None
        self._connected = False

    def _redis_client(self) -> redis.Redis | None:
        return self._redis if self._connected else None

    async def get(self, key: str) -> str | None:
        full = cache_key(key)
        client = self._redis_client()
        if client is not None:
            try:
                return await client.get(full)
            except RedisError as e:
                logger.error("cache: redis get %s failed: %s", full, e)

        entry = _memory_cache.get(full)
        if entry is None:
            return None
        value, expires_at = entry
        if time.time() >= expires_at:
            del _memory_cache[full]
            return None
        return value

    async def set(self, key: str, value: str, expire: int = 300) -> bool:
        full = cache_key(key)
        client = self._redis_client()
        if client is not None:
            try:
                await client.setex(full, expire, value)
                return True
            except RedisError as e:
                logger.error("cache: redis set %s failed: %s", full, e)
        _memory_cache[full] = (value, time.time() + expire)
        return True

    async def delete(self, key: str) -> bool:
        full = cache_key(key)
        client = self._redis_client()
        if client is not None:
            try:
                await client.delete(full)
            except RedisError as e:
                logger.error("cache: redis delete %s failed: %s", full, e)
        _ = _memory_cache.pop(full, None)
        return True

    async def get_json(self, key: str) -> dict | list | None:
        raw = await self.get(key)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("cache: dropping undecodable entry %s", cache_key(key))
            return None

    async def set_json(self, key: str, value: dict | list, expire: int = 300) -> bool:
        return await self.set(key, json.dumps(value, ensure_ascii=False, default=str), expire)

    async def remember_json(
        self,
        key: str,
        expire: int,
        loader: Callable[[], Awaitable[Any]],
    ) -> Any:
        """命中缓存直接返回，否则调用 loader 计算并写回"""
        cached = await self.get_json(key)
        if cached is not None:
            return cached
        value = await loader()
        _ = await self.set_json(key, value, expire)
        return value

    async def clear_pattern(self, pattern: str) -> int:
        """按通配符删除（模式同样自动加前缀），返回删除数量"""
        full_pattern = cache_key(pattern)
        count = 0
        client = self._redis_client()
        if client is not None:
            try:
                keys = [k async for k in client.scan_iter(match=full_pattern)]
                if keys:
                    count = await client.delete(*keys)
            except RedisError as e:
                logger.error("cache: redis clear %s failed: %s", full_pattern, e)
        for k in [k for k in _memory_cache if fnmatch.fnmatch(k, full_pattern)]:
            del _memory_cache[k]
            count += 1
        return count


cache_service = CacheService()
