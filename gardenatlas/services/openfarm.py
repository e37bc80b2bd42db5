"""
OpenFarm crop API client (secondary enrichment provider).

No auth. Searching by name returns {"data": [{"attributes": {"slug": ...}}]};
the crop detail lives at /crops/{slug}. Both requests time out after the
configured provider timeout.
"""
import logging
from typing import Optional

import httpx

from gardenatlas.core.config import settings

logger = logging.getLogger(__name__)


class OpenFarmAPIError(Exception):
    """Raised on transport or HTTP failures from OpenFarm."""


async def _get(path: str, params: Optional[dict] = None) -> dict:
    url = f"{settings.OPENFARM_BASE_URL}{path}"
    logger.debug("GET %s %s", url, params or "")
    try:
        async with httpx.AsyncClient(timeout=settings.PROVIDER_TIMEOUT_SECONDS) as client:
            response = await client.get(url, params=params)
            response.raise_for_status()
            return response.json()
    except httpx.HTTPStatusError as exc:
        raise OpenFarmAPIError(f"HTTP {exc.response.status_code} from {path}") from exc
    except (httpx.HTTPError, ValueError) as exc:
        raise OpenFarmAPIError(f"{type(exc).__name__} on {path}: {exc}") from exc


async def search_crop(name: str) -> Optional[dict]:
    """Return the first crop matching *name*, or None."""
    data = await _get("/crops", {"filter": name})
    matches = data.get("data") or []
    return matches[0] if matches else None


async def fetch_crop_detail(slug: str) -> Optional[dict]:
    """Return the full crop record for *slug*, or None."""
    data = await _get(f"/crops/{slug}")
    return data.get("data") or None


async def find_crop(name: str) -> Optional[dict]:
    """Search by name, then fetch the matching crop's detail record."""
    match = await search_crop(name)
    if not match:
        return None
    slug = (match.get("attributes") or {}).get("slug")
    if not slug:
        return match
    return await fetch_crop_detail(slug) or match
