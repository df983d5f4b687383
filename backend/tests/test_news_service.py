from datetime import timedelta

import pytest

from newsdesk.exceptions import ConflictError, NotFoundError, ValidationError
from newsdesk.models.news import News, NewsView
from newsdesk.schemas.news import NewsCreate, NewsUpdate
from newsdesk.services.news_service import news_service
from newsdesk.utils.timeutil import utcnow


@pytest.mark.asyncio
async def test_create_derives_slug_excerpt_and_publish_time(test_session, make_user) -> None:
    author = await make_user("author")
    news = await news_service.create(
        test_session,
        NewsCreate(title="Hello World", content="<p>Hello <b>there</b></p>", status="published"),
        author_id=author.id,
    )
    assert news.slug == "hello-world"
    assert news.excerpt == "Hello there"
    assert news.published_at is not None
    assert news.author_id == author.id

    second = await news_service.create(test_session, NewsCreate(title="Hello World"))
    assert second.slug == "hello-world-2"
    assert second.published_at is None

    with pytest.raises(ConflictError):
        await news_service.create(test_session, NewsCreate(title="Other", slug="hello-world"))


@pytest.mark.asyncio
async def test_invalid_status_and_missing_tags(test_session) -> None:
    with pytest.raises(ValidationError):
        await news_service.create(test_session, NewsCreate(title="X", status="live"))
    with pytest.raises(ValidationError):
        await news_service.create(test_session, NewsCreate(title="X", tag_ids=[42]))


@pytest.mark.asyncio
async def test_draft_and_future_news_are_never_public(test_session, make_news) -> None:
    visible = await make_news("Visible")
    draft = await make_news("Draft", status="draft", published_at=None)
    future = await make_news("Future", published_at=utcnow() + timedelta(days=1))
    trashed = await make_news("Trashed", deleted_at=utcnow())

    items, total, _ = await news_service.get_published_list(test_session)
    assert [n.id for n in items] == [visible.id]
    assert total == 1

    for hidden in (draft, future, trashed):
        with pytest.raises(NotFoundError):
            await news_service.get_published_by_slug(test_session, hidden.slug)
        test_session.add(NewsView(news_id=hidden.id, ip_address="1.1.1.1"))
    test_session.add(NewsView(news_id=visible.id, ip_address="1.1.1.1"))
    await test_session.commit()

    trending = await news_service.trending(test_session)
    assert [n.id for n, _ in trending] == [visible.id]


@pytest.mark.asyncio
async def test_update_publish_and_status_transitions(test_session, make_news) -> None:
    news = await make_news(status="draft", published_at=None)

    published = await news_service.publish(test_session, news.id)
    assert published.status == "published"
    stamped = published.published_at
    assert stamped is not None

    archived = await news_service.archive(test_session, news.id)
    assert archived.published_at == stamped
    again = await news_service.publish(test_session, news.id)
    assert again.published_at == stamped

    updated = await news_service.update(test_session, news.id, NewsUpdate(title="Renamed", slug=""))
    assert updated.title == "Renamed"
    assert updated.slug == "renamed"


@pytest.mark.asyncio
async def test_category_filter_includes_descendants(test_session, make_category, make_news) -> None:
    parent = await make_category("Business")
    child = await make_category("Markets", parent=parent)
    other = await make_category("Sport")
    in_child = await make_news(category_id=child.id)
    in_parent = await make_news(category_id=parent.id)
    _ = await make_news(category_id=other.id)

    items, total, _ = await news_service.get_published_list(test_session, category_id=parent.id)
    assert {n.id for n in items} == {in_child.id, in_parent.id}
    assert total == 2


@pytest.mark.asyncio
async def test_trending_only_counts_views_inside_window(test_session, make_news) -> None:
    old_hit = await make_news("Old hit")
    fresh = await make_news("Fresh")
    for _ in range(5):
        test_session.add(NewsView(news_id=old_hit.id, ip_address="2.2.2.2", viewed_at=utcnow() - timedelta(days=10)))
    for _ in range(2):
        test_session.add(NewsView(news_id=fresh.id, ip_address="2.2.2.2"))
    await test_session.commit()

    rows = await news_service.trending(test_session, days=7)
    assert [(n.id, views) for n, views in rows] == [(fresh.id, 2)]


@pytest.mark.asyncio
async def test_search_bounds_and_matches(test_session, make_news) -> None:
    hit = await make_news("Election results", content="<p>Turnout was high</p>")
    _ = await make_news("Weather")

    items, total, _ = await news_service.search(test_session, "TURNOUT")
    assert [n.id for n in items] == [hit.id]
    assert total == 1

    with pytest.raises(ValidationError):
        await news_service.search(test_session, "a")
    with pytest.raises(ValidationError):
        await news_service.search(test_session, "x" * 256)


@pytest.mark.asyncio
async def test_soft_delete_restore_and_stats(test_session, make_news) -> None:
    news = await make_news()
    _ = await make_news(status="draft", published_at=None)
    _ = await make_news(published_at=utcnow() + timedelta(hours=3))

    await news_service.soft_delete(test_session, news.id)
    with pytest.raises(NotFoundError):
        await news_service.get(test_session, news.id)
    trashed, total = await news_service.get_admin_list(test_session, trashed=True)
    assert total == 1 and trashed[0].id == news.id

    stats = await news_service.stats(test_session)
    assert stats == {"total": 2, "published": 1, "draft": 1, "archived": 0, "scheduled": 1, "deleted": 1}

    restored = await news_service.restore(test_session, news.id)
    assert restored.deleted_at is None


@pytest.mark.asyncio
async def test_related_excludes_self_and_other_categories(test_session, make_category, make_news) -> None:
    cat = await make_category("Tech")
    base = await make_news(category_id=cat.id)
    sibling = await make_news(category_id=cat.id)
    _ = await make_news()

    related = await news_service.related(test_session, base)
    assert [n.id for n in related] == [sibling.id]


@pytest.mark.asyncio
async def test_bulk_publish_and_delete(test_session, make_news) -> None:
    a = await make_news(status="draft", published_at=None)
    b = await make_news()

    result = await news_service.bulk_action(test_session, "publish", [a.id, a.id, 999])
    assert result["processed"] == 1
    assert result["failed"] == 1

    result = await news_service.bulk_action(test_session, "delete", [b.id])
    assert result["processed"] == 1
    row = await test_session.get(News, b.id)
    assert row is not None and row.deleted_at is not None
