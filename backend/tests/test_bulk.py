import pytest

from newsdesk.exceptions import NotFoundError, ValidationError
from newsdesk.services.bulk import ensure_action, run_bulk


def test_ensure_action_normalizes_and_rejects() -> None:
    assert ensure_action(" Publish ", {"publish", "draft"}) == "publish"
    with pytest.raises(ValidationError, match="Allowed: draft, publish"):
        ensure_action("explode", {"publish", "draft"})


@pytest.mark.asyncio
async def test_run_bulk_records_per_item_failures() -> None:
    seen: list[int] = []

    async def handler(item_id: int) -> None:
        seen.append(item_id)
        if item_id == 2:
            raise NotFoundError("Item not found")

    result = await run_bulk("touch", [1, "2", 1, 3], handler)
    assert seen == [1, 2, 3]
    assert result == {
        "action": "touch",
        "processed": 2,
        "failed": 1,
        "results": [
            {"id": 1, "success": True, "error": None},
            {"id": 2, "success": False, "error": "Item not found"},
            {"id": 3, "success": True, "error": None},
        ],
    }


@pytest.mark.asyncio
async def test_run_bulk_propagates_unexpected_errors() -> None:
    async def handler(item_id: int) -> None:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await run_bulk("touch", [1], handler)
