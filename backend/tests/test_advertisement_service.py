from datetime import timedelta

import pytest

from newsdesk.exceptions import NotFoundError, ValidationError
from newsdesk.models.advertisement import Advertisement
from newsdesk.schemas.advertisement import AdvertisementCreate, AdvertisementUpdate
from newsdesk.services.advertisement_service import advertisement_service
from newsdesk.utils.timeutil import utcnow


def _ad(**kwargs) -> AdvertisementCreate:
    data = {"title": "Spring sale", "position": "sidebar"}
    data.update(kwargs)
    return AdvertisementCreate(**data)


@pytest.mark.asyncio
async def test_past_expiry_forces_expired_status(test_session) -> None:
    now = utcnow()
    ad = await advertisement_service.create(
        test_session, _ad(status="active", starts_at=now - timedelta(days=10), expires_at=now - timedelta(days=1))
    )
    assert ad.status == "expired"
    assert ad.is_displayable is False

    updated = await advertisement_service.update(test_session, ad.id, AdvertisementUpdate(status="active"))
    assert updated.status == "expired"


@pytest.mark.asyncio
async def test_validation(test_session) -> None:
    now = utcnow()
    with pytest.raises(ValidationError):
        await advertisement_service.create(test_session, _ad(position="ceiling"))
    with pytest.raises(ValidationError):
        await advertisement_service.create(test_session, _ad(rate_type="per-view"))
    with pytest.raises(ValidationError, match="after the start"):
        await advertisement_service.create(test_session, _ad(starts_at=now, expires_at=now - timedelta(hours=1)))
    with pytest.raises(ValidationError):
        await advertisement_service.create(test_session, _ad(media_id=404))
    with pytest.raises(NotFoundError):
        await advertisement_service.get(test_session, 404)


@pytest.mark.asyncio
async def test_counters_click_rate_and_cost(test_session) -> None:
    ad = await advertisement_service.create(test_session, _ad(rate=0.5, rate_type="cpc"))
    assert ad.click_rate == 0.0

    for _ in range(4):
        ad = await advertisement_service.record_impression(test_session, ad.id)
    ad = await advertisement_service.record_click(test_session, ad.id)
    assert (ad.impressions, ad.clicks) == (4, 1)
    assert ad.click_rate == 25.0
    assert advertisement_service.calculate_cost(ad) == 0.5

    ad.rate_type = "cpm"
    ad.rate = 2.0
    assert ad.calculate_cost() == 0.01
    ad.rate_type = "fixed"
    ad.rate = 99.0
    assert ad.calculate_cost() == 99.0

    perf = await advertisement_service.performance(test_session, ad.id)
    assert perf["impressions"] == 4
    assert perf["clicks"] == 1
    assert perf["is_displayable"] is True


@pytest.mark.asyncio
async def test_click_without_impressions_keeps_rate(test_session) -> None:
    ad = await advertisement_service.create(test_session, _ad())
    ad = await advertisement_service.record_click(test_session, ad.id)
    assert ad.clicks == 1
    assert ad.click_rate == 0.0


@pytest.mark.asyncio
async def test_get_for_position(test_session) -> None:
    now = utcnow()
    second = await advertisement_service.create(test_session, _ad(title="B", position="header", sort_order=2))
    first = await advertisement_service.create(test_session, _ad(title="A", position="header", sort_order=1))
    _ = await advertisement_service.create(test_session, _ad(title="Off", position="header", status="inactive"))
    _ = await advertisement_service.create(
        test_session, _ad(title="Later", position="header", starts_at=now + timedelta(days=1))
    )
    _ = await advertisement_service.create(test_session, _ad(title="Side", position="sidebar"))

    ads = await advertisement_service.get_for_position(test_session, "header")
    assert [a.id for a in ads] == [first.id, second.id]
    assert len(await advertisement_service.get_for_position(test_session, "header", limit=1)) == 1
    with pytest.raises(ValidationError):
        await advertisement_service.get_for_position(test_session, "nowhere")


@pytest.mark.asyncio
async def test_duplicate_and_bulk(test_session) -> None:
    ad = await advertisement_service.create(test_session, _ad(rate=10))
    _ = await advertisement_service.record_impression(test_session, ad.id)

    copy = await advertisement_service.duplicate(test_session, ad.id)
    assert copy.title == "Spring sale (Copy)"
    assert copy.status == "inactive"
    assert copy.impressions == 0

    result = await advertisement_service.bulk_action(test_session, "delete", [copy.id, 777])
    assert result["processed"] == 1
    assert result["results"][1] == {"id": 777, "success": False, "error": "Advertisement not found"}
    assert await test_session.get(Advertisement, copy.id) is None
