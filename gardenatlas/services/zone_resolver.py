"""
Address → hardiness zone resolution.

Cascade, each step short-circuiting on success:
  1. Geocode the raw text (AddressNotFound on zero results).
  2. Cache check on the canonical formatted address. Hit: bump lookup_count.
  3. Zone lookup providers, in order. Any failure or empty answer tries the next.
  4. Geographic approximation, which never fails.
  5. Insert the resolved row. A concurrent resolver may have inserted the same
     address since step 2; the ON CONFLICT clause then only bumps lookup_count,
     leaving the stored zone untouched, and the stored zone is returned.

Exactly one write per resolution: the count increment on a hit, the upsert on a miss.
"""
import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gardenatlas.db.upsert import insert_for
from gardenatlas.models.address import (
    ZONE_METHOD_APPROXIMATION,
    ZONE_METHOD_PROVIDER_API,
    ResolvedAddress,
)
from gardenatlas.services.geocoding import GeocodedAddress, geocode_address
from gardenatlas.services.hardiness import ZoneProvider, default_zone_providers
from gardenatlas.services.zone_approximation import approximate_zone

logger = logging.getLogger(__name__)


@dataclass
class ZoneResolution:
    zone: str
    lat: float
    lng: float
    full_address: str
    cached: bool
    method: str
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None

    def as_dict(self) -> dict:
        return asdict(self)


async def lookup_zone(
    lat: float, lng: float, providers: Sequence[ZoneProvider]
) -> tuple[str, str]:
    """Run the provider cascade for a point. Returns (zone, method)."""
    for provider in providers:
        try:
            zone = await provider.lookup(lat, lng)
        except Exception as exc:
            logger.warning("zone_resolver: %s failed for (%s, %s): %s", provider.name, lat, lng, exc)
            continue
        if zone:
            logger.info("zone_resolver: %s → %s for (%s, %s)", provider.name, zone, lat, lng)
            return zone, ZONE_METHOD_PROVIDER_API
        logger.info("zone_resolver: %s had no zone for (%s, %s)", provider.name, lat, lng)

    zone = approximate_zone(lat, lng)
    logger.warning("zone_resolver: all providers failed, approximated %s for (%s, %s)", zone, lat, lng)
    return zone, ZONE_METHOD_APPROXIMATION


async def get_cached_address(db: AsyncSession, full_address: str) -> Optional[ResolvedAddress]:
    result = await db.execute(
        select(ResolvedAddress).where(ResolvedAddress.full_address == full_address).limit(1)
    )
    return result.scalar_one_or_none()


async def _increment_lookup_count(db: AsyncSession, full_address: str) -> None:
    await db.execute(
        update(ResolvedAddress)
        .where(ResolvedAddress.full_address == full_address)
        .values(
            lookup_count=ResolvedAddress.lookup_count + 1,
            updated_at=datetime.now(timezone.utc),
        )
    )
    await db.commit()


async def store_resolution(
    db: AsyncSession, geocoded: GeocodedAddress, zone: str, method: str
) -> tuple[str, str, int]:
    """
    Insert a resolved address; on a duplicate only the lookup counter moves.

    Returns the stored (zone, method, lookup_count), which differ from the
    arguments when another resolver inserted the address first.
    """
    now = datetime.now(timezone.utc)
    stmt = insert_for(db, ResolvedAddress).values(
        full_address=geocoded.full_address,
        street_address=geocoded.street_address,
        city=geocoded.city,
        state=geocoded.state,
        zip_code=geocoded.zip_code,
        country=geocoded.country or "US",
        lat=geocoded.lat,
        lng=geocoded.lng,
        zone_id=zone,
        zone_method=method,
        lookup_count=1,
        created_at=now,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[ResolvedAddress.full_address],
        set_={
            "lookup_count": ResolvedAddress.lookup_count + 1,
            "updated_at": now,
        },
    ).returning(ResolvedAddress.zone_id, ResolvedAddress.zone_method, ResolvedAddress.lookup_count)
    stored = (await db.execute(stmt)).one()
    await db.commit()
    return stored.zone_id, stored.zone_method, stored.lookup_count


async def resolve_zone(
    db: AsyncSession,
    address: str,
    providers: Optional[Sequence[ZoneProvider]] = None,
) -> ZoneResolution:
    """
    Resolve *address* to a hardiness zone.

    Raises AddressNotFound when the geocoder has no match and UpstreamUnavailable
    when the geocoder itself fails, ValueError for a blank address. Zone provider
    failures are never surfaced.
    """
    address = address.strip()
    if not address:
        raise ValueError("address must not be empty")
    geocoded = await geocode_address(address)
    logger.info("zone_resolver: geocoded %r → (%s, %s)", address, geocoded.lat, geocoded.lng)

    cached = await get_cached_address(db, geocoded.full_address)
    if cached is not None:
        logger.debug("zone_resolver: cache hit: %s", geocoded.full_address)
        resolution = ZoneResolution(
            zone=cached.zone_id,
            lat=cached.lat,
            lng=cached.lng,
            full_address=cached.full_address,
            cached=True,
            method=cached.zone_method,
            street_address=cached.street_address,
            city=cached.city,
            state=cached.state,
            zip_code=cached.zip_code,
            country=cached.country,
        )
        await _increment_lookup_count(db, geocoded.full_address)
        return resolution

    logger.debug("zone_resolver: cache miss: %s", geocoded.full_address)
    zone, method = await lookup_zone(
        geocoded.lat,
        geocoded.lng,
        providers if providers is not None else default_zone_providers(),
    )
    stored_zone, stored_method, lookup_count = await store_resolution(db, geocoded, zone, method)
    if lookup_count > 1:
        logger.info(
            "zone_resolver: %s was stored concurrently as %s, keeping it",
            geocoded.full_address, stored_zone,
        )

    return ZoneResolution(
        zone=stored_zone,
        lat=geocoded.lat,
        lng=geocoded.lng,
        full_address=geocoded.full_address,
        cached=lookup_count > 1,
        method=stored_method,
        street_address=geocoded.street_address,
        city=geocoded.city,
        state=geocoded.state,
        zip_code=geocoded.zip_code,
        country=geocoded.country or "US",
    )
