import pytest

from newsdesk.exceptions import CircularReferenceError, ConflictError, ValidationError
from newsdesk.models.category import Category
from newsdesk.schemas.category import CategoryCreate, CategoryUpdate
from newsdesk.services.category_service import category_service


@pytest.mark.asyncio
async def test_reparent_to_child_is_rejected_and_parent_unchanged(test_session, make_category) -> None:
    a = await make_category("World")
    b = await make_category("Europe", parent=a)

    with pytest.raises(CircularReferenceError):
        await category_service.update(test_session, a.id, CategoryUpdate(parent_id=b.id))

    await test_session.refresh(a)
    assert a.parent_id is None


@pytest.mark.asyncio
async def test_reparent_to_self_and_deep_descendant_rejected(test_session, make_category) -> None:
    a = await make_category("A")
    b = await make_category("B", parent=a)
    c = await make_category("C", parent=b)

    with pytest.raises(CircularReferenceError):
        await category_service.update(test_session, a.id, CategoryUpdate(parent_id=a.id))
    with pytest.raises(CircularReferenceError):
        await category_service.update(test_session, a.id, CategoryUpdate(parent_id=c.id))

    assert await category_service.would_create_cycle(test_session, b.id, c.id) is True
    assert await category_service.would_create_cycle(test_session, c.id, a.id) is False
    assert await category_service.would_create_cycle(test_session, None, a.id) is False


@pytest.mark.asyncio
async def test_valid_reparent_and_missing_parent(test_session, make_category) -> None:
    a = await make_category("A")
    b = await make_category("B")

    moved = await category_service.update(test_session, b.id, CategoryUpdate(parent_id=a.id))
    assert moved.parent_id == a.id

    with pytest.raises(ValidationError):
        await category_service.update(test_session, b.id, CategoryUpdate(parent_id=9999))


@pytest.mark.asyncio
async def test_create_derives_slug_and_rejects_duplicate(test_session) -> None:
    created = await category_service.create(test_session, CategoryCreate(name="Économie Globale"))
    assert created.slug == "economie-globale"
    assert created.url == "/category/economie-globale"

    with pytest.raises(ConflictError):
        await category_service.create(test_session, CategoryCreate(name="Other", slug="economie-globale"))

    with pytest.raises(ValidationError):
        await category_service.create(test_session, CategoryCreate(name="Bad", language="de"))


@pytest.mark.asyncio
async def test_delete_blocked_by_children_and_news(test_session, make_category, make_news) -> None:
    parent = await make_category("Parent")
    child = await make_category("Child", parent=parent)
    _ = await make_news(category_id=child.id)

    with pytest.raises(ConflictError, match="subcategories"):
        await category_service.delete(test_session, parent.id)
    with pytest.raises(ConflictError, match="news articles"):
        await category_service.delete(test_session, child.id)

    empty = await make_category("Empty")
    await category_service.delete(test_session, empty.id)
    assert await test_session.get(Category, empty.id) is None


@pytest.mark.asyncio
async def test_breadcrumb_descendants_and_tree(test_session, make_category, make_news) -> None:
    root = await make_category("Sport")
    mid = await make_category("Football", parent=root)
    leaf = await make_category("Premier League", parent=mid)
    _ = await make_category("Hidden", is_active=False)
    _ = await make_news(category_id=leaf.id)
    _ = await make_news(category_id=root.id)
    _ = await make_news(category_id=leaf.id, status="draft")

    crumbs = await category_service.get_breadcrumb(test_session, leaf.id)
    assert [c["name"] for c in crumbs] == ["Sport", "Football", "Premier League"]

    ids = await category_service.get_descendant_ids(test_session, root.id)
    assert ids == [root.id, mid.id, leaf.id]
    assert await category_service.get_total_news_count(test_session, root.id) == 2

    tree = await category_service.get_tree(test_session)
    assert [n["name"] for n in tree] == ["Sport"]
    assert tree[0]["children"][0]["children"][0]["name"] == "Premier League"


@pytest.mark.asyncio
async def test_bulk_deactivate_reports_missing_ids(test_session, make_category) -> None:
    a = await make_category("A")
    result = await category_service.bulk_action(test_session, "deactivate", [a.id, 404])

    assert result["processed"] == 1
    assert result["failed"] == 1
    assert result["results"][1] == {"id": 404, "success": False, "error": "Category not found"}
    await test_session.refresh(a)
    assert a.is_active is False

    with pytest.raises(ValidationError):
        await category_service.bulk_action(test_session, "explode", [a.id])
