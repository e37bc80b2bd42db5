from unittest.mock import AsyncMock, patch

import httpx
import pytest

from gardenatlas.core.errors import UpstreamUnavailable
from gardenatlas.services.hardiness import (
    PhzmApiProvider,
    UsdaArcGisProvider,
    ZoneProvider,
    default_zone_providers,
    parse_arcgis_zone,
    parse_phzmapi_zone,
)


def test_parse_phzmapi_zone():
    assert parse_phzmapi_zone({"zone": " 8B ", "temperature_range": "15 to 20"}) == "8b"
    assert parse_phzmapi_zone({"zone": ""}) is None
    assert parse_phzmapi_zone(None) is None


def test_parse_arcgis_zone():
    assert parse_arcgis_zone({"features": [{"attributes": {"ZONE": "7a"}}]}) == "7a"
    assert parse_arcgis_zone({"features": []}) is None
    assert parse_arcgis_zone({"features": [{"attributes": {}}]}) is None


def test_default_provider_order():
    assert [p.name for p in default_zone_providers()] == ["phzmapi", "usda_arcgis"]


async def test_phzmapi_lookup():
    response = httpx.Response(200, json={"zone": "9b"})
    with patch.object(ZoneProvider, "_get", AsyncMock(return_value=response)) as mock_get:
        zone = await PhzmApiProvider().lookup(34.05, -118.24)
    assert zone == "9b"
    assert mock_get.call_args.args[0].endswith("/34.05/-118.24.json")


async def test_phzmapi_not_found_is_no_zone():
    with patch.object(ZoneProvider, "_get", AsyncMock(return_value=httpx.Response(404))):
        assert await PhzmApiProvider().lookup(0.0, 0.0) is None


async def test_phzmapi_server_error_raises():
    with patch.object(ZoneProvider, "_get", AsyncMock(return_value=httpx.Response(503))):
        with pytest.raises(UpstreamUnavailable) as exc_info:
            await PhzmApiProvider().lookup(34.05, -118.24)
    assert exc_info.value.status_code == 503


async def test_arcgis_lookup_sends_point_query():
    response = httpx.Response(200, json={"features": [{"attributes": {"ZONE": "10a"}}]})
    with patch.object(ZoneProvider, "_get", AsyncMock(return_value=response)) as mock_get:
        zone = await UsdaArcGisProvider().lookup(34.05, -118.24)
    assert zone == "10a"
    params = mock_get.call_args.kwargs["params"]
    assert params["geometry"] == "-118.24,34.05"
    assert params["geometryType"] == "esriGeometryPoint"
    assert params["outFields"] == "ZONE"


async def test_arcgis_error_body_raises():
    response = httpx.Response(200, json={"error": {"code": 400, "message": "Invalid geometry"}})
    with patch.object(ZoneProvider, "_get", AsyncMock(return_value=response)):
        with pytest.raises(UpstreamUnavailable):
            await UsdaArcGisProvider().lookup(34.05, -118.24)


async def test_transport_error_becomes_upstream_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    real_client = httpx.AsyncClient
    with patch(
        "gardenatlas.services.hardiness.httpx.AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    ):
        with pytest.raises(UpstreamUnavailable) as exc_info:
            await PhzmApiProvider(timeout=1).lookup(34.05, -118.24)
    assert exc_info.value.provider == "phzmapi"
