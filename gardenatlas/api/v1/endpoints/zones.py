from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from gardenatlas.core.errors import AddressNotFound, ConfigurationError, UpstreamUnavailable
from gardenatlas.db.session import get_db
from gardenatlas.schemas.zone import ZoneLookupRequest, ZoneResolutionRead
from gardenatlas.services.zone_resolver import resolve_zone

router = APIRouter(prefix="/zones", tags=["zones"])


@router.post("/resolve", response_model=ZoneResolutionRead)
async def resolve_address_zone(body: ZoneLookupRequest, db: AsyncSession = Depends(get_db)):
    """Geocode an address and return its hardiness zone, from cache when known."""
    try:
        resolution = await resolve_zone(db, body.address)
    except AddressNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ConfigurationError as exc:
        raise HTTPException(status_code=503, detail=str(exc))
    except UpstreamUnavailable as exc:
        raise HTTPException(status_code=502, detail=f"Geocoding unavailable: {exc.message}")
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return ZoneResolutionRead(**resolution.as_dict())
