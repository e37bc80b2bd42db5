from unittest.mock import patch

import httpx
import pytest

from gardenatlas.core.errors import ConfigurationError
from gardenatlas.services import openfarm, trefle

_RealAsyncClient = httpx.AsyncClient


def _mock_client(handler):
    def factory(**kwargs):
        return _RealAsyncClient(transport=httpx.MockTransport(handler), **kwargs)
    return patch("httpx.AsyncClient", factory)


async def test_trefle_page_listing_sends_token():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/plants")
        assert request.url.params["token"] == "test-trefle-token"
        assert request.url.params["page"] == "3"
        return httpx.Response(200, json={"data": [{"id": 1}], "links": {}})

    with _mock_client(handler):
        assert await trefle.fetch_plants_page(3) == [{"id": 1}]


async def test_trefle_past_last_page_is_empty():
    with _mock_client(lambda request: httpx.Response(200, json={"data": []})):
        assert await trefle.fetch_plants_page(99999) == []


async def test_trefle_429_is_rate_limit():
    with _mock_client(lambda request: httpx.Response(429)):
        with pytest.raises(trefle.RateLimitError):
            await trefle.fetch_plants_page(1)


async def test_trefle_server_error():
    with _mock_client(lambda request: httpx.Response(502, text="bad gateway")):
        with pytest.raises(trefle.TrefleAPIError):
            await trefle.fetch_plant_detail(1)


async def test_trefle_requires_token():
    with patch("gardenatlas.services.trefle.settings.TREFLE_API_KEY", ""):
        with pytest.raises(ConfigurationError):
            trefle.require_token()


async def test_openfarm_find_crop_fetches_detail():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/crops"):
            assert request.url.params["filter"] == "Tomato"
            return httpx.Response(200, json={"data": [{"attributes": {"slug": "tomato"}}]})
        assert request.url.path.endswith("/crops/tomato")
        return httpx.Response(
            200, json={"data": {"attributes": {"slug": "tomato", "description": "Red fruit."}}}
        )

    with _mock_client(handler):
        crop = await openfarm.find_crop("Tomato")
    assert crop["attributes"]["description"] == "Red fruit."


async def test_openfarm_no_match():
    with _mock_client(lambda request: httpx.Response(200, json={"data": []})):
        assert await openfarm.find_crop("Quinoa") is None


async def test_openfarm_http_error():
    with _mock_client(lambda request: httpx.Response(500)):
        with pytest.raises(openfarm.OpenFarmAPIError):
            await openfarm.search_crop("Tomato")
