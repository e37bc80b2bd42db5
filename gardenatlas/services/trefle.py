"""
Trefle plant API client (primary catalog provider).

Auth via ?token= query parameter. The free tier allows 120 requests/minute and
answers HTTP 429 once exceeded. Paginated listing returns {"data": [...]} with
an empty list past the last page.
"""
import logging
from typing import Any, Optional

import httpx

from gardenatlas.core.config import settings
from gardenatlas.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


class RateLimitError(Exception):
    """Raised when Trefle answers HTTP 429."""


class TrefleAPIError(Exception):
    """Raised on non-429 failures from the Trefle API (HTTP errors, timeouts, bad payloads)."""


def require_token() -> str:
    if not settings.TREFLE_API_KEY:
        raise ConfigurationError("TREFLE_API_KEY is not configured")
    return settings.TREFLE_API_KEY


async def _get(path: str, params: Optional[dict[str, Any]] = None) -> dict:
    url = f"{settings.TREFLE_BASE_URL}{path}"
    query = {"token": require_token(), **(params or {})}
    logger.debug("GET %s %s", url, params or "")
    try:
        async with httpx.AsyncClient(timeout=settings.PROVIDER_TIMEOUT_SECONDS) as client:
            response = await client.get(url, params=query)
    except httpx.HTTPError as exc:
        raise TrefleAPIError(f"{type(exc).__name__} on {path}: {exc}") from exc

    if response.status_code == 429:
        raise RateLimitError(f"HTTP 429 from Trefle on {path}")
    if response.status_code >= 400:
        raise TrefleAPIError(f"HTTP {response.status_code} from {path}: {response.text[:200]}")

    try:
        data = response.json()
    except ValueError as exc:
        raise TrefleAPIError(f"Non-JSON response from {path}") from exc
    if not isinstance(data, dict):
        raise TrefleAPIError(f"Unexpected payload from {path}")
    return data


async def fetch_plants_page(page: int) -> list[dict]:
    """GET /plants?page=N. Returns the raw records; [] past the end of the catalog."""
    data = await _get("/plants", {"page": page})
    return data.get("data") or []


async def fetch_plant_detail(plant_id: int) -> Optional[dict]:
    """GET /plants/{id}. Returns the detail record, or None if Trefle has no data."""
    data = await _get(f"/plants/{plant_id}")
    return data.get("data") or None


async def search_plants(query: str, page: int = 1) -> list[dict]:
    """GET /plants/search?q=..."""
    data = await _get("/plants/search", {"q": query, "page": page})
    return data.get("data") or []
