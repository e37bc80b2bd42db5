from typing import Optional
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gardenatlas.core.errors import AddressNotFound, UpstreamUnavailable
from gardenatlas.models.address import ResolvedAddress
from gardenatlas.services.geocoding import GeocodedAddress
from gardenatlas.services.hardiness import ZoneProvider
from gardenatlas.services.zone_resolver import lookup_zone, resolve_zone, store_resolution

LA = GeocodedAddress(
    full_address="200 N Spring St, Los Angeles, CA 90012, USA",
    lat=34.0537,
    lng=-118.2428,
    street_address="200 North Spring Street",
    city="Los Angeles",
    state="CA",
    zip_code="90012",
    country="US",
)


class FakeProvider(ZoneProvider):
    def __init__(self, name: str, zone: Optional[str] = None, error: Optional[Exception] = None):
        super().__init__(timeout=1)
        self.name = name
        self.zone = zone
        self.error = error
        self.calls = 0

    async def lookup(self, lat: float, lng: float) -> Optional[str]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.zone


def _geocode(result=LA):
    return patch(
        "gardenatlas.services.zone_resolver.geocode_address",
        AsyncMock(return_value=result),
    )


async def _lookup_count(db: AsyncSession, full_address: str) -> int:
    return await db.scalar(
        select(ResolvedAddress.lookup_count).where(ResolvedAddress.full_address == full_address)
    )


# ── Provider cascade ──────────────────────────────────────────────────────────

async def test_first_provider_answer_wins():
    first = FakeProvider("first", zone="10b")
    second = FakeProvider("second", zone="9a")
    assert await lookup_zone(34.0, -118.0, [first, second]) == ("10b", "provider_api")
    assert second.calls == 0


async def test_failed_and_empty_providers_fall_through():
    failing = FakeProvider("failing", error=UpstreamUnavailable("failing", "timed out"))
    empty = FakeProvider("empty", zone=None)
    last = FakeProvider("last", zone="8a")
    assert await lookup_zone(34.0, -118.0, [failing, empty, last]) == ("8a", "provider_api")
    assert failing.calls == empty.calls == last.calls == 1


async def test_unexpected_provider_error_is_swallowed():
    broken = FakeProvider("broken", error=KeyError("features"))
    assert await lookup_zone(34.0537, -118.2428, [broken]) == ("10a", "geographic_approximation")


async def test_no_providers_uses_approximation():
    assert await lookup_zone(41.88, -87.63, []) == ("5b", "geographic_approximation")


# ── Resolution + cache ────────────────────────────────────────────────────────

async def test_resolve_miss_then_hit(db: AsyncSession):
    provider = FakeProvider("phzmapi", zone="10b")

    with _geocode():
        first = await resolve_zone(db, "  200 N Spring St, Los Angeles  ", providers=[provider])
    assert first.zone == "10b"
    assert first.cached is False
    assert first.method == "provider_api"
    assert first.full_address == LA.full_address
    assert first.city == "Los Angeles"
    assert await _lookup_count(db, LA.full_address) == 1

    with _geocode():
        second = await resolve_zone(db, "200 n spring st los angeles", providers=[provider])
    assert second.cached is True
    assert second.zone == "10b"
    assert second.lat == pytest.approx(LA.lat)
    assert second.method == "provider_api"
    assert provider.calls == 1
    assert await _lookup_count(db, LA.full_address) == 2

    rows = await db.scalar(select(func.count()).select_from(ResolvedAddress))
    assert rows == 1


async def test_resolve_falls_back_to_approximation(db: AsyncSession):
    providers = [
        FakeProvider("phzmapi", error=UpstreamUnavailable("phzmapi", "timed out")),
        FakeProvider("usda_arcgis", error=UpstreamUnavailable("usda_arcgis", "HTTP 500", 500)),
    ]
    with _geocode():
        resolution = await resolve_zone(db, "200 N Spring St", providers=providers)
    assert resolution.zone == "10a"
    assert resolution.method == "geographic_approximation"

    stored = await db.scalar(
        select(ResolvedAddress.zone_method).where(ResolvedAddress.full_address == LA.full_address)
    )
    assert stored == "geographic_approximation"


async def test_cached_zone_is_never_re_resolved(db: AsyncSession):
    with _geocode():
        await resolve_zone(db, "200 N Spring St", providers=[FakeProvider("a", zone="10b")])
        again = await resolve_zone(db, "200 N Spring St", providers=[FakeProvider("b", zone="7a")])
    assert again.zone == "10b"


async def test_address_not_found_writes_nothing(db: AsyncSession):
    provider = FakeProvider("phzmapi", zone="10b")
    with patch(
        "gardenatlas.services.zone_resolver.geocode_address",
        AsyncMock(side_effect=AddressNotFound("zzzz")),
    ):
        with pytest.raises(AddressNotFound):
            await resolve_zone(db, "zzzz", providers=[provider])
    assert provider.calls == 0
    assert await db.scalar(select(func.count()).select_from(ResolvedAddress)) == 0


async def test_blank_address_rejected_before_geocoding(db: AsyncSession):
    with _geocode() as mock_geocode:
        with pytest.raises(ValueError):
            await resolve_zone(db, "   ")
    mock_geocode.assert_not_called()


async def test_concurrent_insert_keeps_first_zone(db: AsyncSession):
    # Two resolvers missed the cache for the same address; the second insert loses
    await store_resolution(db, LA, "10b", "provider_api")
    await store_resolution(db, LA, "7a", "geographic_approximation")

    row = (
        await db.execute(
            select(ResolvedAddress.zone_id, ResolvedAddress.zone_method, ResolvedAddress.lookup_count)
            .where(ResolvedAddress.full_address == LA.full_address)
        )
    ).one()
    assert row.zone_id == "10b"
    assert row.zone_method == "provider_api"
    assert row.lookup_count == 2


async def test_lost_insert_race_returns_stored_zone(db: AsyncSession):
    # Another resolver stored the address after this one checked the cache
    await store_resolution(db, LA, "10b", "provider_api")

    with _geocode(), patch(
        "gardenatlas.services.zone_resolver.get_cached_address", AsyncMock(return_value=None)
    ):
        resolution = await resolve_zone(db, "200 N Spring St", providers=[FakeProvider("late", zone="7a")])

    assert resolution.zone == "10b"
    assert resolution.method == "provider_api"
    assert resolution.cached is True
    assert await _lookup_count(db, LA.full_address) == 2


async def test_store_resolution_returns_stored_row(db: AsyncSession):
    assert await store_resolution(db, LA, "10b", "provider_api") == ("10b", "provider_api", 1)
    assert await store_resolution(db, LA, "7a", "geographic_approximation") == ("10b", "provider_api", 2)
