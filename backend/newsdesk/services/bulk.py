"""批量操作工具：逐项执行，单项失败只记录在结果中"""
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from ..exceptions import DomainError, ValidationError

logger = logging.getLogger(__name__)


def ensure_action(action: str, allowed: Iterable[str]) -> str:
    a = str(action or "").strip().lower()
    allowed_set = set(allowed)
    if a not in allowed_set:
        raise ValidationError(f"Invalid bulk action: {action}. Allowed: {', '.join(sorted(allowed_set))}")
    return a


async def run_bulk(
    action: str,
    ids: Iterable[int],
    handler: Callable[[int], Awaitable[Any]],
) -> dict[str, Any]:
    """对每个ID执行 handler；DomainError 记为该项失败，不中断后续处理"""
    results: list[dict[str, Any]] = []
    processed = 0
    failed = 0
    seen: set[int] = set()
    for raw_id in ids:
        item_id = int(raw_id)
        if item_id in seen:
            continue
        seen.add(item_id)
        try:
            _ = await handler(item_id)
            processed += 1
            results.append({"id": item_id, "success": True, "error": None})
        except DomainError as e:
            failed += 1
            results.append({"id": item_id, "success": False, "error": e.message})
            logger.warning("bulk %s failed id=%s: %s", action, item_id, e.message)
    logger.info("bulk %s done processed=%s failed=%s", action, processed, failed)
    return {"action": action, "processed": processed, "failed": failed, "results": results}
