from datetime import timedelta

import pytest

from newsdesk.exceptions import CommentsClosedError, NotFoundError, PermissionDeniedError, ValidationError
from newsdesk.models.comment import Comment
from newsdesk.services.comment_service import comment_service
from newsdesk.services.settings_service import settings_service
from newsdesk.utils.identity import Anonymous, Registered
from newsdesk.utils.timeutil import utcnow


def _guest(ip: str = "10.0.0.1") -> Anonymous:
    return Anonymous(ip=ip, name="Guest", email="guest@example.com")


@pytest.mark.asyncio
async def test_replies_count_only_counts_approved_children(test_session, make_user, make_news) -> None:
    editor = await make_user("editor")
    news = await make_news()
    parent = await comment_service.submit(
        test_session, news.id, "Top level comment", Registered(editor.id), actor=editor
    )
    assert parent.status == "approved"

    for text in ("First reply", "Second reply"):
        _ = await comment_service.submit(
            test_session, news.id, text, Registered(editor.id), parent_id=parent.id, actor=editor
        )
    pending = await comment_service.submit(test_session, news.id, "Guest reply", _guest(), parent_id=parent.id)
    assert pending.status == "pending"

    await test_session.refresh(parent)
    assert parent.replies_count == 2

    _ = await comment_service.approve(test_session, pending.id)
    await test_session.refresh(parent)
    assert parent.replies_count == 3

    await comment_service.delete(test_session, pending.id, editor)
    await test_session.refresh(parent)
    assert parent.replies_count == 2


@pytest.mark.asyncio
async def test_moderation_setting_controls_initial_status(test_session, make_user, make_news) -> None:
    reader = await make_user("user")
    news = await make_news()

    first = await comment_service.submit(test_session, news.id, "Needs review", Registered(reader.id), actor=reader)
    assert first.status == "pending"

    _ = await settings_service.set(test_session, "moderate_comments", False, "boolean")
    second = await comment_service.submit(test_session, news.id, "Goes live", Registered(reader.id), actor=reader)
    assert second.status == "approved"


@pytest.mark.asyncio
async def test_submit_rejections(test_session, make_news) -> None:
    news = await make_news()
    closed = await make_news(allow_comments=False)
    other = await make_news()
    foreign = await comment_service.submit(test_session, other.id, "Elsewhere", _guest())

    with pytest.raises(CommentsClosedError):
        await comment_service.submit(test_session, closed.id, "Hello there", _guest())
    with pytest.raises(NotFoundError):
        await comment_service.submit(test_session, 999, "Hello there", _guest())
    with pytest.raises(ValidationError):
        await comment_service.submit(test_session, news.id, "no", _guest())
    with pytest.raises(ValidationError):
        await comment_service.submit(test_session, news.id, "Hello there", Anonymous(ip="1.1.1.1"))
    with pytest.raises(ValidationError):
        await comment_service.submit(
            test_session, news.id, "Hello there", Anonymous(ip="1.1.1.1", name="X", email="not-an-email")
        )
    with pytest.raises(ValidationError, match="parent"):
        await comment_service.submit(test_session, news.id, "Hello there", _guest(), parent_id=foreign.id)

    _ = await settings_service.set(test_session, "enable_comments", False, "boolean")
    with pytest.raises(CommentsClosedError):
        await comment_service.submit(test_session, news.id, "Hello there", _guest())


@pytest.mark.asyncio
async def test_edit_window_and_delete_permissions(test_session, make_user, make_news) -> None:
    owner = await make_user("user")
    stranger = await make_user("user")
    editor = await make_user("editor")
    news = await make_news()
    comment = await comment_service.submit(test_session, news.id, "Original", Registered(owner.id), actor=owner)

    edited = await comment_service.update(test_session, comment.id, "Edited text", owner)
    assert edited.content == "Edited text"
    with pytest.raises(PermissionDeniedError):
        await comment_service.update(test_session, comment.id, "Hijacked", stranger)

    comment.created_at = utcnow() - timedelta(minutes=20)
    await test_session.commit()
    with pytest.raises(PermissionDeniedError):
        await comment_service.update(test_session, comment.id, "Too late", owner)
    assert (await comment_service.update(test_session, comment.id, "Editor fix", editor)).content == "Editor fix"

    with pytest.raises(PermissionDeniedError):
        await comment_service.delete(test_session, comment.id, stranger)
    await comment_service.delete(test_session, comment.id, owner)
    row = await test_session.get(Comment, comment.id)
    assert row is not None and row.deleted_at is not None


@pytest.mark.asyncio
async def test_thread_descendants_and_listing(test_session, make_user, make_news) -> None:
    editor = await make_user("editor")
    news = await make_news()
    me = Registered(editor.id)
    root = await comment_service.submit(test_session, news.id, "Root comment", me, actor=editor)
    child = await comment_service.submit(test_session, news.id, "Child comment", me, parent_id=root.id, actor=editor)
    grandchild = await comment_service.submit(
        test_session, news.id, "Grandchild comment", me, parent_id=child.id, actor=editor
    )
    pinned = await comment_service.submit(test_session, news.id, "Pinned comment", me, actor=editor)
    assert (await comment_service.toggle_pin(test_session, pinned.id)).is_pinned is True
    assert (await comment_service.unpin(test_session, pinned.id)).is_pinned is False
    assert (await comment_service.pin(test_session, pinned.id)).is_pinned is True

    thread = await comment_service.get_thread(test_session, grandchild.id)
    assert [c.id for c in thread] == [root.id, child.id, grandchild.id]
    assert await comment_service.depth(test_session, grandchild.id) == 2

    descendants = await comment_service.get_descendants(test_session, root.id)
    assert [c.id for c in descendants] == [child.id, grandchild.id]

    listing = await comment_service.approved_for_news(test_session, news.id)
    assert [c.id for c, _ in listing] == [pinned.id, root.id]
    assert [r.id for r in listing[1][1]] == [child.id]

    liked = await comment_service.like(test_session, root.id)
    assert liked.likes_count == 1


@pytest.mark.asyncio
async def test_bulk_moderation(test_session, make_news) -> None:
    news = await make_news()
    a = await comment_service.submit(test_session, news.id, "Spam spam", _guest())
    b = await comment_service.submit(test_session, news.id, "Nice article", _guest("10.0.0.2"))

    result = await comment_service.bulk_action(test_session, "spam", [a.id])
    assert result["processed"] == 1
    result = await comment_service.bulk_action(test_session, "approve", [b.id, 12345])
    assert result["processed"] == 1 and result["failed"] == 1

    items, total = await comment_service.get_admin_list(test_session, status="spam")
    assert total == 1 and items[0].id == a.id
