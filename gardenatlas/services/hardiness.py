"""
USDA hardiness zone lookup providers.

Two independent services answer "which zone is this point in?" with different
request shapes:

PHZMapi:   GET {PHZMAPI_BASE_URL}/{lat}/{lng}.json
           Response: {"zone": "8b", "temperature_range": "15 to 20", ...} or 404
USDA GIS:  GET {USDA_ZONE_QUERY_URL}?geometry={lng},{lat}&geometryType=esriGeometryPoint&inSR=4326...
           Response: {"features": [{"attributes": {"ZONE": "8b"}}]} or empty features

lookup() returns the zone string, or None when the provider answered but had
no zone for the point. Transport and HTTP failures raise UpstreamUnavailable.
The resolver treats both outcomes as "try the next provider".
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from gardenatlas.core.config import settings
from gardenatlas.core.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

# phzmapi.org rejects requests without a browser-like agent
_USER_AGENT = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36"


def _clean_zone(value: Any) -> Optional[str]:
    if value is None:
        return None
    zone = str(value).strip().lower()
    return zone or None


def parse_phzmapi_zone(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    return _clean_zone(data.get("zone"))


def parse_arcgis_zone(data: Any) -> Optional[str]:
    if not isinstance(data, dict):
        return None
    features = data.get("features") or []
    if not features:
        return None
    attributes = features[0].get("attributes") or {}
    return _clean_zone(attributes.get("ZONE"))


class ZoneProvider(ABC):
    """A single hardiness zone lookup service."""

    name: str = ""

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._timeout = timeout if timeout is not None else settings.PROVIDER_TIMEOUT_SECONDS

    @abstractmethod
    async def lookup(self, lat: float, lng: float) -> Optional[str]:
        """Return the zone code for the point, or None if the provider has none."""

    async def _get(self, url: str, **kwargs) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                return await client.get(url, **kwargs)
        except httpx.TimeoutException as exc:
            raise UpstreamUnavailable(self.name, "Zone lookup timed out") from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(self.name, f"Transport error: {exc}") from exc


class PhzmApiProvider(ZoneProvider):
    """Path-keyed lookup against phzmapi.org."""

    name = "phzmapi"

    async def lookup(self, lat: float, lng: float) -> Optional[str]:
        url = f"{settings.PHZMAPI_BASE_URL}/{lat}/{lng}.json"
        logger.debug("phzmapi: GET %s", url)
        response = await self._get(url, headers={"User-Agent": _USER_AGENT})

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise UpstreamUnavailable(self.name, f"HTTP {response.status_code}", response.status_code)
        try:
            return parse_phzmapi_zone(response.json())
        except ValueError as exc:
            raise UpstreamUnavailable(self.name, "Response was not JSON") from exc


class UsdaArcGisProvider(ZoneProvider):
    """Spatial point-intersects query against the USDA hardiness zone MapServer layer."""

    name = "usda_arcgis"

    async def lookup(self, lat: float, lng: float) -> Optional[str]:
        params = {
            "geometry": f"{lng},{lat}",
            "geometryType": "esriGeometryPoint",
            "inSR": 4326,
            "spatialRel": "esriSpatialRelIntersects",
            "outFields": "ZONE",
            "returnGeometry": "false",
            "f": "json",
        }
        logger.debug("usda_arcgis: query (%s, %s)", lat, lng)
        response = await self._get(settings.USDA_ZONE_QUERY_URL, params=params)

        if response.status_code >= 400:
            raise UpstreamUnavailable(self.name, f"HTTP {response.status_code}", response.status_code)
        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamUnavailable(self.name, "Response was not JSON") from exc
        # ArcGIS reports query errors in a 200 body
        if isinstance(data, dict) and "error" in data:
            raise UpstreamUnavailable(self.name, f"Query error: {data['error']}")
        return parse_arcgis_zone(data)


def default_zone_providers() -> list[ZoneProvider]:
    """Providers in cascade order."""
    return [PhzmApiProvider(), UsdaArcGisProvider()]
