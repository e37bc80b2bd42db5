from unittest.mock import AsyncMock, patch

from httpx import AsyncClient

from gardenatlas.core.errors import AddressNotFound, ConfigurationError, UpstreamUnavailable
from gardenatlas.services.geocoding import GeocodedAddress
from gardenatlas.services.hardiness import PhzmApiProvider

DENVER = GeocodedAddress(
    full_address="1437 Bannock St, Denver, CO 80202, USA",
    lat=39.7393,
    lng=-104.9897,
    street_address="1437 Bannock Street",
    city="Denver",
    state="CO",
    zip_code="80202",
    country="US",
)


def _geocode(**kwargs):
    return patch("gardenatlas.services.zone_resolver.geocode_address", AsyncMock(**kwargs))


def _providers(zone=None, error=None):
    provider = PhzmApiProvider(timeout=1)
    provider.lookup = AsyncMock(return_value=zone, side_effect=error)
    return patch(
        "gardenatlas.services.zone_resolver.default_zone_providers", lambda: [provider]
    )


async def test_resolve_zone(client: AsyncClient):
    with _geocode(return_value=DENVER), _providers(zone="6a"):
        res = await client.post("/api/v1/zones/resolve", json={"address": "1437 Bannock St, Denver"})
    assert res.status_code == 200
    data = res.json()
    assert data["zone"] == "6a"
    assert data["cached"] is False
    assert data["method"] == "provider_api"
    assert data["full_address"] == DENVER.full_address
    assert data["city"] == "Denver"
    assert data["state"] == "CO"


async def test_resolve_zone_second_call_is_cached(client: AsyncClient):
    with _geocode(return_value=DENVER), _providers(zone="6a"):
        await client.post("/api/v1/zones/resolve", json={"address": "1437 Bannock St"})
        res = await client.post("/api/v1/zones/resolve", json={"address": "1437 bannock street denver"})
    assert res.status_code == 200
    assert res.json()["cached"] is True
    assert res.json()["zone"] == "6a"


async def test_resolve_zone_approximates_when_providers_fail(client: AsyncClient):
    with _geocode(return_value=DENVER), _providers(error=UpstreamUnavailable("phzmapi", "timed out")):
        res = await client.post("/api/v1/zones/resolve", json={"address": "1437 Bannock St"})
    assert res.status_code == 200
    assert res.json()["zone"] == "6a"
    assert res.json()["method"] == "geographic_approximation"


async def test_resolve_zone_address_not_found(client: AsyncClient):
    with _geocode(side_effect=AddressNotFound("qwertyuiop")):
        res = await client.post("/api/v1/zones/resolve", json={"address": "qwertyuiop"})
    assert res.status_code == 404


async def test_resolve_zone_geocoder_down(client: AsyncClient):
    with _geocode(side_effect=UpstreamUnavailable("google", "Geocoding request timed out")):
        res = await client.post("/api/v1/zones/resolve", json={"address": "1437 Bannock St"})
    assert res.status_code == 502


async def test_resolve_zone_not_configured(client: AsyncClient):
    with _geocode(side_effect=ConfigurationError("GOOGLE_MAPS_API_KEY is not configured")):
        res = await client.post("/api/v1/zones/resolve", json={"address": "1437 Bannock St"})
    assert res.status_code == 503


async def test_resolve_zone_blank_address(client: AsyncClient):
    with _geocode(return_value=DENVER) as mock_geocode:
        res = await client.post("/api/v1/zones/resolve", json={"address": "   "})
        missing = await client.post("/api/v1/zones/resolve", json={})
    assert res.status_code == 422
    assert missing.status_code == 422
    mock_geocode.assert_not_called()


async def test_health(client: AsyncClient):
    res = await client.get("/api/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}
