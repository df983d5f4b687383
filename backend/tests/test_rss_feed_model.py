from datetime import timedelta

import pytest

from newsdesk.models.rss_feed import RssFeed
from newsdesk.utils.timeutil import utcnow


def _feed(status: str = "active", total: int = 0, errors: int = 0, **kwargs) -> RssFeed:
    return RssFeed(
        name="Wire",
        url="https://wire.example.com/rss",
        status=status,
        total_items_fetched=total,
        error_count=errors,
        fetch_frequency=kwargs.pop("fetch_frequency", 60),
        **kwargs,
    )


@pytest.mark.parametrize(
    ("total", "errors", "expected"),
    [
        (0, 0, 0.0),
        (100, 1, 99.0),
        (3, 1, 66.67),
        (3, 5, 0.0),
    ],
)
def test_success_rate(total: int, errors: int, expected: float) -> None:
    assert _feed(total=total, errors=errors).success_rate == expected


@pytest.mark.parametrize(
    ("status", "total", "errors", "expected"),
    [
        ("inactive", 100, 0, "inactive"),
        ("inactive", 0, 20, "inactive"),
        ("active", 100, 11, "poor"),
        ("error", 100, 11, "poor"),
        ("active", 100, 6, "fair"),
        ("active", 100, 1, "excellent"),
        ("active", 20, 3, "good"),
        ("active", 20, 5, "fair"),
        ("active", 0, 0, "fair"),
        ("active", 3, 5, "fair"),
    ],
)
def test_health_status_thresholds(status: str, total: int, errors: int, expected: str) -> None:
    assert _feed(status=status, total=total, errors=errors).health_status == expected


def test_next_fetch_and_needs_fetching() -> None:
    now = utcnow()
    fresh = _feed()
    assert fresh.next_fetch_at is None
    assert fresh.needs_fetching(now) is True

    recent = _feed(last_fetched_at=now - timedelta(minutes=30))
    assert recent.next_fetch_at == now + timedelta(minutes=30)
    assert recent.needs_fetching(now) is False

    stale = _feed(last_fetched_at=now - timedelta(minutes=61))
    assert stale.needs_fetching(now) is True
    assert _feed(status="inactive").needs_fetching(now) is False
