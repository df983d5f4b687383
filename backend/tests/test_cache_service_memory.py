import pytest

from newsdesk.services import cache_service as cache_module


@pytest.fixture
def memory_cache(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(cache_module.cache_service, "_connected", False, raising=False)
    monkeypatch.setattr(cache_module.cache_service, "_redis", None, raising=False)
    cache_module._memory_cache.clear()
    yield cache_module.cache_service
    cache_module._memory_cache.clear()


def test_cache_key_prefix_is_applied_once() -> None:
    assert cache_module.cache_key("app_settings") == "newsdesk:app_settings"
    assert cache_module.cache_key("newsdesk:app_settings") == "newsdesk:app_settings"


@pytest.mark.asyncio
async def test_memory_set_get_delete_clear_pattern(memory_cache) -> None:
    assert memory_cache.backend == "memory"
    assert await memory_cache.set("k1", "v1", expire=300) is True
    assert await memory_cache.get("k1") == "v1"
    assert "newsdesk:k1" in cache_module._memory_cache

    assert await memory_cache.set("feed:1", "a", expire=300) is True
    assert await memory_cache.set("feed:2", "b", expire=300) is True

    assert await memory_cache.delete("feed:1") is True
    assert await memory_cache.get("feed:1") is None

    assert await memory_cache.clear_pattern("feed:*") == 1
    assert await memory_cache.get("feed:2") is None
    assert await memory_cache.get("k1") == "v1"


@pytest.mark.asyncio
async def test_memory_expired_entry_is_removed(memory_cache) -> None:
    cache_module._memory_cache["newsdesk:expired"] = ("value", 0.0)
    assert await memory_cache.get("expired") is None
    assert "newsdesk:expired" not in cache_module._memory_cache


@pytest.mark.asyncio
async def test_memory_json_and_undecodable_entry(memory_cache) -> None:
    payload = {"site_name": {"value": "Daily", "type": "string"}, "tags": ["a", "b"]}
    assert await memory_cache.set_json("json", payload, expire=60) is True
    assert await memory_cache.get_json("json") == payload

    cache_module._memory_cache["newsdesk:broken"] = ("{not json", 9e18)
    assert await memory_cache.get_json("broken") is None


@pytest.mark.asyncio
async def test_remember_json_calls_loader_once(memory_cache) -> None:
    calls: list[int] = []

    async def loader() -> dict[str, int]:
        calls.append(1)
        return {"articles_per_page": 12}

    assert await memory_cache.remember_json("settings", 60, loader) == {"articles_per_page": 12}
    assert await memory_cache.remember_json("settings", 60, loader) == {"articles_per_page": 12}
    assert len(calls) == 1

    _ = await memory_cache.delete("settings")
    _ = await memory_cache.remember_json("settings", 60, loader)
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_connect_failure_keeps_memory_backend(memory_cache) -> None:
    ok = await memory_cache.connect("redis://127.0.0.1:1/0")
    assert ok is False
    assert memory_cache.is_connected is False
    assert await memory_cache.set("k", "v") is True
    assert await memory_cache.get("k") == "v"
