import httpx
import pytest

from newsdesk.services.rss_service import rss_service

from conftest import auth_headers
from test_rss_service import RSS_SAMPLE


@pytest.mark.asyncio
async def test_news_public_flow(client, make_user, make_news) -> None:
    reader = await make_user("user")
    news = await make_news("Budget passes", slug="budget-passes")
    _ = await make_news("Hidden", status="draft", published_at=None)

    res = await client.get("/api/news")
    assert res.status_code == 200
    body = res.json()
    assert body["total"] == 1
    assert body["items"][0]["slug"] == "budget-passes"

    res = await client.get("/api/news/budget-passes", headers=auth_headers(reader))
    assert res.status_code == 200
    detail = res.json()
    assert detail["views_count"] == 1
    assert detail["engagement"] == {"comments_count": 0, "likes_count": 0, "dislikes_count": 0}
    assert detail["user_reaction"] is None

    res = await client.post(f"/api/news/{news.id}/reaction", json={"type": "like"}, headers=auth_headers(reader))
    assert res.status_code == 200
    assert res.json()["action"] == "added"

    res = await client.post(f"/api/news/{news.id}/reaction", json={"type": "love"})
    assert res.status_code == 422

    res = await client.get("/api/news/search", params={"q": "budget"})
    assert res.status_code == 200
    assert res.json()["total"] == 1


@pytest.mark.asyncio
async def test_news_write_permissions(client, make_user) -> None:
    author = await make_user("author")
    other = await make_user("author")
    reader = await make_user("user")

    res = await client.post("/api/news", json={"title": "Scoop"}, headers=auth_headers(reader))
    assert res.status_code == 403

    res = await client.post("/api/news", json={"title": "Scoop", "content": "<p>Hi</p>"}, headers=auth_headers(author))
    assert res.status_code == 201
    created = res.json()
    assert created["slug"] == "scoop"
    assert created["status"] == "draft"

    res = await client.put(f"/api/news/{created['id']}", json={"title": "Stolen"}, headers=auth_headers(other))
    assert res.status_code == 403

    res = await client.delete(f"/api/news/{created['id']}", headers=auth_headers(author))
    assert res.status_code == 200


@pytest.mark.asyncio
async def test_comment_submission_messages(client, make_user, make_news) -> None:
    editor = await make_user("editor")
    news = await make_news()

    res = await client.post(
        f"/api/news/{news.id}/comments",
        json={"content": "Great piece", "guest_name": "Ann", "guest_email": "ann@example.com"},
    )
    assert res.status_code == 201
    assert res.json()["message"] == "Comment submitted and is awaiting moderation."
    assert res.json()["comment"]["commenter_name"] == "Ann"
    pending_id = res.json()["comment"]["id"]

    res = await client.post(
        f"/api/news/{news.id}/comments", json={"content": "Editor note"}, headers=auth_headers(editor)
    )
    assert res.status_code == 201
    assert res.json()["message"] == "Comment posted successfully."

    res = await client.get(f"/api/news/{news.id}/comments")
    assert res.json()["total"] == 1

    res = await client.post(f"/api/comments/{pending_id}/approve", headers=auth_headers(editor))
    assert res.status_code == 200
    assert res.json()["status"] == "approved"

    res = await client.get(f"/api/news/{news.id}/comments")
    assert res.json()["total"] == 2

    res = await client.post(f"/api/comments/{pending_id}/like")
    assert res.status_code == 401
    res = await client.post(f"/api/comments/{pending_id}/like", headers=auth_headers(editor))
    assert res.status_code == 200
    assert res.json()["likes_count"] == 1


@pytest.mark.asyncio
async def test_taxonomy_endpoints(client, make_user) -> None:
    editor = await make_user("editor")
    author = await make_user("author")

    res = await client.post("/api/categories", json={"name": "World"}, headers=auth_headers(editor))
    assert res.status_code == 201
    world = res.json()
    res = await client.post(
        "/api/categories", json={"name": "Europe", "parent_id": world["id"]}, headers=auth_headers(editor)
    )
    europe = res.json()

    res = await client.put(
        f"/api/categories/{world['id']}", json={"parent_id": europe["id"]}, headers=auth_headers(editor)
    )
    assert res.status_code == 409

    res = await client.get("/api/categories/tree")
    assert [n["slug"] for n in res.json()] == ["world"]

    res = await client.get(f"/api/categories/{europe['id']}/breadcrumb")
    assert [b["slug"] for b in res.json()] == ["world", "europe"]

    res = await client.post("/api/tags/quick-create", json={"title": "Elections"}, headers=auth_headers(author))
    assert res.json()["message"] == "Tag created successfully."
    res = await client.post("/api/tags/quick-create", json={"title": "elections"}, headers=auth_headers(author))
    assert res.json()["message"] == "Tag already exists."
    assert res.json()["created"] is False


@pytest.mark.asyncio
async def test_settings_endpoints(client, make_user) -> None:
    admin = await make_user("admin")
    editor = await make_user("editor")

    res = await client.put(
        "/api/settings/site_name",
        json={"value": "Daily Planet", "type": "string", "is_public": True},
        headers=auth_headers(editor),
    )
    assert res.status_code == 403

    res = await client.put(
        "/api/settings/site_name",
        json={"value": "Daily Planet", "type": "string", "is_public": True},
        headers=auth_headers(admin),
    )
    assert res.status_code == 200
    assert res.json()["decoded_value"] == "Daily Planet"

    res = await client.get("/api/settings/public")
    assert res.json() == {"site_name": "Daily Planet"}

    res = await client.delete("/api/settings/missing", headers=auth_headers(admin))
    assert res.status_code == 404


@pytest.mark.asyncio
async def test_rss_endpoints(client, make_user, make_news, monkeypatch) -> None:
    admin = await make_user("admin")
    _ = await make_news("Exported story")

    res = await client.get("/api/rss/feed.xml")
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("application/rss+xml")
    assert "<title>Exported story</title>" in res.text

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=RSS_SAMPLE)

    monkeypatch.setattr(
        rss_service,
        "client_factory",
        lambda **kw: httpx.AsyncClient(transport=httpx.MockTransport(handler), **kw),
    )

    res = await client.post(
        "/api/rss/feeds",
        json={"name": "Wire", "url": "https://wire.example.com/rss", "auto_publish": True},
        headers=auth_headers(admin),
    )
    assert res.status_code == 201
    feed_id = res.json()["id"]

    res = await client.post(f"/api/rss/{feed_id}/fetch", headers=auth_headers(admin))
    assert res.status_code == 200
    assert res.json()["items_imported"] == 2

    res = await client.post(
        "/api/rss/feeds", json={"name": "Dup", "url": "https://wire.example.com/rss"}, headers=auth_headers(admin)
    )
    assert res.status_code == 409


@pytest.mark.asyncio
async def test_ads_endpoints(client, make_user) -> None:
    admin = await make_user("admin")

    res = await client.post(
        "/api/ads",
        json={"title": "Banner", "position": "header", "click_url": "https://shop.example.com"},
        headers=auth_headers(admin),
    )
    assert res.status_code == 201
    ad_id = res.json()["id"]

    res = await client.get("/api/ads/position/header")
    assert [a["id"] for a in res.json()] == [ad_id]
    assert "rate" not in res.json()[0]

    _ = await client.post(f"/api/ads/{ad_id}/impression")
    _ = await client.post(f"/api/ads/{ad_id}/impression")
    res = await client.post(f"/api/ads/{ad_id}/click")
    assert res.json() == {"id": ad_id, "impressions": 2, "clicks": 1, "click_rate": 50.0}

    res = await client.post(f"/api/ads/{ad_id}/deactivate", headers=auth_headers(admin))
    assert res.json()["status"] == "inactive"
    res = await client.get("/api/ads/position/header")
    assert res.json() == []
