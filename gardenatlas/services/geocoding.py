"""
Google Maps geocoding client.

Resolves free-text addresses to a canonical formatted address, coordinates and
structured components. The formatted address is the zone cache key, so two
spellings of the same place collapse into one cached row.

API: GET {GOOGLE_GEOCODE_URL}?address=...&key=...
Response: {"status": "OK", "results": [{"formatted_address", "geometry": {"location": {"lat", "lng"}},
           "address_components": [{"long_name", "short_name", "types": [...]}]}]}
"""
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from gardenatlas.core.config import settings
from gardenatlas.core.errors import AddressNotFound, ConfigurationError, UpstreamUnavailable

logger = logging.getLogger(__name__)

_PROVIDER = "google"
_ERROR_STATUSES = ("REQUEST_DENIED", "OVER_QUERY_LIMIT", "INVALID_REQUEST", "UNKNOWN_ERROR")


@dataclass
class GeocodedAddress:
    full_address: str
    lat: float
    lng: float
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


def parse_address_components(components: list[dict]) -> dict[str, Optional[str]]:
    """
    Pull street/city/state/zip/country out of a Google address_components list.

    A component may carry several types and is checked against every field.
    street_number and route are joined in the order they appear.
    """
    parts: dict[str, Optional[str]] = {
        "street_address": None,
        "city": None,
        "state": None,
        "zip_code": None,
        "country": None,
    }
    for component in components or []:
        types = component.get("types") or []
        long_name = component.get("long_name")
        short_name = component.get("short_name")

        if "street_number" in types or "route" in types:
            if long_name:
                parts["street_address"] = (
                    f"{parts['street_address']} {long_name}" if parts["street_address"] else long_name
                )
        if "locality" in types:
            parts["city"] = long_name
        if "administrative_area_level_1" in types:
            parts["state"] = short_name
        if "postal_code" in types:
            parts["zip_code"] = long_name
        if "country" in types:
            parts["country"] = short_name
    return parts


def parse_geocode_response(address: str, data: dict) -> GeocodedAddress:
    """Turn a geocode JSON body into a GeocodedAddress using the first result."""
    api_status = data.get("status", "OK")
    if api_status in _ERROR_STATUSES:
        raise UpstreamUnavailable(_PROVIDER, f"API error: {data.get('error_message', api_status)}")

    results = data.get("results") or []
    if api_status == "ZERO_RESULTS" or not results:
        raise AddressNotFound(address)

    best = results[0]
    try:
        location = best["geometry"]["location"]
        lat = float(location["lat"])
        lng = float(location["lng"])
        full_address = best["formatted_address"]
    except (KeyError, TypeError, ValueError) as exc:
        raise UpstreamUnavailable(_PROVIDER, f"Failed to parse response: {exc}") from exc

    return GeocodedAddress(
        full_address=full_address,
        lat=lat,
        lng=lng,
        **parse_address_components(best.get("address_components") or []),
    )


async def geocode_address(address: str) -> GeocodedAddress:
    """
    Geocode *address* with Google Maps.

    Raises AddressNotFound on zero results, UpstreamUnavailable on transport or
    API errors, ConfigurationError when no API key is configured.
    """
    if not settings.GOOGLE_MAPS_API_KEY:
        raise ConfigurationError("GOOGLE_MAPS_API_KEY is not configured")

    params = {"address": address, "key": settings.GOOGLE_MAPS_API_KEY}
    try:
        async with httpx.AsyncClient(timeout=settings.PROVIDER_TIMEOUT_SECONDS) as client:
            response = await client.get(settings.GOOGLE_GEOCODE_URL, params=params)
            response.raise_for_status()
    except httpx.TimeoutException as exc:
        logger.warning("geocoding: request timed out")
        raise UpstreamUnavailable(_PROVIDER, "Geocoding request timed out") from exc
    except httpx.HTTPStatusError as exc:
        logger.warning("geocoding: HTTP %d", exc.response.status_code)
        raise UpstreamUnavailable(
            _PROVIDER, f"Provider returned HTTP {exc.response.status_code}", exc.response.status_code
        ) from exc
    except httpx.HTTPError as exc:
        logger.warning("geocoding: transport error: %s", exc)
        raise UpstreamUnavailable(_PROVIDER, "Connection to geocoding provider failed") from exc

    return parse_geocode_response(address, response.json())
