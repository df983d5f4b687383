import asyncio

import pytest

from newsdesk import main as main_mod


@pytest.mark.asyncio
async def test_root_and_health(client) -> None:
    res = await client.get("/")
    assert res.status_code == 200
    body = res.json()
    assert body["name"] == main_mod.settings.app_name
    assert body["docs"] == "/docs"

    res = await client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_domain_errors_map_to_status_and_detail(client) -> None:
    res = await client.get("/api/news/no-such-story")
    assert res.status_code == 404
    assert res.json() == {"detail": "News not found"}

    res = await client.get("/api/ads/position/ceiling")
    assert res.status_code == 400
    assert res.json() == {"detail": "Invalid position: ceiling"}


@pytest.mark.asyncio
async def test_request_id_header(client) -> None:
    res = await client.get("/health", headers={"X-Request-Id": "abc123"})
    assert res.headers["X-Request-Id"] == "abc123"
    assert res.headers["X-Response-Time"].endswith("ms")

    res = await client.get("/health")
    assert len(res.headers["X-Request-Id"]) == 32


@pytest.mark.asyncio
async def test_rss_scheduler_loop_survives_errors_and_stops(monkeypatch) -> None:
    stop = asyncio.Event()
    calls: list[str] = []

    class _SessionCtx:
        async def __aenter__(self):
            return "session"

        async def __aexit__(self, exc_type, exc, tb):
            return False

    async def fake_fetch_due(session):
        calls.append(session)
        if len(calls) == 1:
            raise RuntimeError("database unavailable")
        stop.set()
        return [{"feed_id": 1, "success": False}]

    monkeypatch.setattr(main_mod, "AsyncSessionLocal", lambda: _SessionCtx(), raising=True)
    monkeypatch.setattr(main_mod.rss_service, "fetch_due", fake_fetch_due)

    await asyncio.wait_for(main_mod._rss_scheduler_loop(stop, 0.01), timeout=2)
    assert calls == ["session", "session"]
