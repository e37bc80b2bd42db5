"""
Catalog merge, upsert and read paths.

Merge precedence (primary = Trefle, secondary = OpenFarm):
  - identity fields (provider id, slug, scientific name) come from the primary only
  - description and edibility fall back to the secondary when the primary has none
  - companion plants come from the secondary only

Upsert conflict policy on provider_id:
  - display fields (name, description, names, distributions) always refresh
  - image_url, zones, family, genus and growth attributes coalesce: a null never
    replaces a known value
  - secondary-sourced fields are only written when the merge carried secondary data,
    so a primary-only re-sync keeps what enrichment found
  - sync_count increments; view_count / last_viewed are never touched
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gardenatlas.core.config import settings
from gardenatlas.db.upsert import insert_for
from gardenatlas.models.catalog import CatalogPlant
from gardenatlas.services import trefle
from gardenatlas.services.extraction import (
    NormalizedRecord,
    ValidationRejected,
    extract_record,
    zone_rank,
)

logger = logging.getLogger(__name__)

PRIMARY_SOURCE = "trefle"
SECONDARY_SOURCE = "openfarm"

GROWTH_COLUMNS = (
    "plant_type",
    "sun_requirement",
    "water_needs",
    "soil_ph_min",
    "soil_ph_max",
    "mature_height_min",
    "mature_height_max",
)


@dataclass
class SecondaryRecord:
    slug: Optional[str] = None
    description: Optional[str] = None
    is_edible: Optional[bool] = True  # OpenFarm only lists food crops
    companions: list[str] = field(default_factory=list)
    days_to_maturity: Optional[int] = None


@dataclass
class MergedRecord:
    primary: NormalizedRecord
    description: Optional[str]
    is_edible: Optional[bool]
    secondary_slug: Optional[str] = None
    companion_plants: Optional[list[str]] = None
    days_to_maturity: Optional[int] = None
    data_sources: list[str] = field(default_factory=lambda: [PRIMARY_SOURCE])
    enriched: bool = False
    has_secondary: bool = False


def _int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def parse_secondary(crop: Optional[dict]) -> Optional[SecondaryRecord]:
    """Pull the fields we merge out of an OpenFarm crop payload."""
    if not crop:
        return None
    attributes = crop.get("attributes") or {}
    companions: list[str] = []
    for companion in attributes.get("companions") or []:
        if isinstance(companion, dict):
            companion = (companion.get("attributes") or {}).get("name") or companion.get("name")
        if companion and str(companion) not in companions:
            companions.append(str(companion))
    description = attributes.get("description")
    return SecondaryRecord(
        slug=attributes.get("slug"),
        description=description.strip() if isinstance(description, str) and description.strip() else None,
        companions=companions,
        days_to_maturity=_int(attributes.get("growing_degree_days")),
    )


def merge_records(
    primary: NormalizedRecord,
    secondary: Optional[SecondaryRecord] = None,
    *,
    enriched: bool = False,
) -> MergedRecord:
    if secondary is None:
        return MergedRecord(
            primary=primary,
            description=primary.description,
            is_edible=primary.is_edible,
            enriched=enriched,
        )
    return MergedRecord(
        primary=primary,
        description=primary.description or secondary.description,
        is_edible=primary.is_edible if primary.is_edible is not None else secondary.is_edible,
        secondary_slug=secondary.slug,
        companion_plants=secondary.companions or None,
        days_to_maturity=secondary.days_to_maturity,
        data_sources=[PRIMARY_SOURCE, SECONDARY_SOURCE],
        enriched=enriched,
        has_secondary=True,
    )


# ── Write path ────────────────────────────────────────────────────────────────

async def upsert_catalog_record(db: AsyncSession, merged: MergedRecord) -> int:
    """Insert or refresh one catalog row. Caller commits. Returns the row id."""
    record = merged.primary
    now = datetime.now(timezone.utc)
    table = CatalogPlant.__table__

    values: dict[str, Any] = {
        "provider_id": record.provider_id,
        "slug": record.slug,
        "name": record.name,
        "scientific_name": record.scientific_name,
        "common_names": record.common_names,
        "family": record.family,
        "genus": record.genus,
        "min_zone": record.min_zone,
        "max_zone": record.max_zone,
        "min_zone_rank": zone_rank(record.min_zone),
        "max_zone_rank": zone_rank(record.max_zone),
        "plant_type": record.plant_type,
        "sun_requirement": record.sun_requirement or None,
        "water_needs": record.water_needs,
        "soil_ph_min": record.soil_ph_min,
        "soil_ph_max": record.soil_ph_max,
        "mature_height_min": record.mature_height_min,
        "mature_height_max": record.mature_height_max,
        "days_to_maturity": merged.days_to_maturity,
        "native_distributions": record.native_distributions,
        "introduced_distributions": record.introduced_distributions,
        "distribution_raw": record.distribution_raw,
        "description": merged.description,
        "image_url": record.image_url,
        "is_edible": merged.is_edible,
        "secondary_slug": merged.secondary_slug,
        "companion_plants": merged.companion_plants,
        "data_sources": merged.data_sources,
        "enriched": merged.enriched,
        "sync_count": 1,
        "view_count": 0,
        "last_synced": now,
        "created_at": now,
        "updated_at": now,
    }
    stmt = insert_for(db, CatalogPlant).values(**values)
    excluded = stmt.excluded

    set_: dict[str, Any] = {
        "slug": excluded.slug,
        "name": excluded.name,
        "scientific_name": excluded.scientific_name,
        "common_names": excluded.common_names,
        "description": excluded.description,
        "native_distributions": excluded.native_distributions,
        "introduced_distributions": excluded.introduced_distributions,
        "distribution_raw": excluded.distribution_raw,
        "family": func.coalesce(excluded.family, table.c.family),
        "genus": func.coalesce(excluded.genus, table.c.genus),
        "image_url": func.coalesce(excluded.image_url, table.c.image_url),
        "min_zone": func.coalesce(excluded.min_zone, table.c.min_zone),
        "max_zone": func.coalesce(excluded.max_zone, table.c.max_zone),
        "min_zone_rank": func.coalesce(excluded.min_zone_rank, table.c.min_zone_rank),
        "max_zone_rank": func.coalesce(excluded.max_zone_rank, table.c.max_zone_rank),
        "is_edible": func.coalesce(excluded.is_edible, table.c.is_edible),
        "sync_count": table.c.sync_count + 1,
        "last_synced": excluded.last_synced,
        "updated_at": now,
    }
    for column in GROWTH_COLUMNS:
        set_[column] = func.coalesce(excluded[column], table.c[column])
    if merged.has_secondary:
        set_["days_to_maturity"] = func.coalesce(excluded.days_to_maturity, table.c.days_to_maturity)
        set_["secondary_slug"] = excluded.secondary_slug
        set_["companion_plants"] = excluded.companion_plants
        set_["data_sources"] = excluded.data_sources
    if merged.enriched:
        set_["enriched"] = True

    stmt = stmt.on_conflict_do_update(
        index_elements=[CatalogPlant.provider_id],
        set_=set_,
    ).returning(CatalogPlant.id)
    result = await db.execute(stmt)
    return result.scalar_one()


# ── Read paths ────────────────────────────────────────────────────────────────

async def browse_catalog(
    db: AsyncSession,
    zone: Optional[str] = None,
    edible: Optional[bool] = None,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[CatalogPlant], int]:
    """Catalog page ranked by local popularity. Returns (items, total)."""
    query = select(CatalogPlant)
    if edible is not None:
        query = query.where(CatalogPlant.is_edible == edible)

    rank = zone_rank(zone)
    if rank is not None:
        # Temperature-derived records only know their minimum
        query = query.where(
            CatalogPlant.min_zone_rank <= rank,
            or_(CatalogPlant.max_zone_rank.is_(None), CatalogPlant.max_zone_rank >= rank),
        )

    total = await db.scalar(select(func.count()).select_from(query.subquery())) or 0
    result = await db.execute(
        query.order_by(CatalogPlant.view_count.desc(), CatalogPlant.name)
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total


async def _search_local(
    db: AsyncSession, query: str, limit: int, edible: Optional[bool] = None
) -> list[CatalogPlant]:
    pattern = f"%{query.lower()}%"
    stmt = select(CatalogPlant).where(
        or_(
            func.lower(CatalogPlant.name).like(pattern),
            func.lower(CatalogPlant.scientific_name).like(pattern),
        )
    )
    if edible is not None:
        stmt = stmt.where(CatalogPlant.is_edible == edible)
    result = await db.execute(
        stmt.order_by(CatalogPlant.view_count.desc(), CatalogPlant.name).limit(limit)
    )
    return list(result.scalars().all())


async def _known_provider_ids(db: AsyncSession, provider_ids: Sequence[int]) -> set[int]:
    if not provider_ids:
        return set()
    result = await db.execute(
        select(CatalogPlant.provider_id).where(CatalogPlant.provider_id.in_(provider_ids))
    )
    return set(result.scalars().all())


async def fetch_missing_records(provider_ids: Sequence[int], limit: int) -> list[dict]:
    """Fetch Trefle detail records concurrently, at most *limit* in flight."""
    semaphore = asyncio.Semaphore(limit)

    async def _fetch(provider_id: int) -> Optional[dict]:
        async with semaphore:
            try:
                return await trefle.fetch_plant_detail(provider_id)
            except (trefle.TrefleAPIError, trefle.RateLimitError) as exc:
                logger.warning("catalog: detail fetch failed for %d: %s", provider_id, exc)
                return None

    details = await asyncio.gather(*(_fetch(pid) for pid in provider_ids))
    return [detail for detail in details if detail]


async def search_catalog(
    db: AsyncSession,
    query: str,
    limit: int = 20,
    min_results: Optional[int] = None,
    edible: Optional[bool] = None,
) -> list[CatalogPlant]:
    """
    Local name search; tops up from Trefle when the local catalog has too few hits.

    Missing records are fetched as one bounded batch and cached before the local
    query is re-run, so callers always get a complete result set. *edible* filters
    in the query itself, so the limit applies to matching rows.
    """
    min_results = settings.SEARCH_MIN_LOCAL_RESULTS if min_results is None else min_results
    local = await _search_local(db, query, limit, edible)
    if len(local) >= min_results:
        return local

    logger.info("catalog: %d local hits for %r, searching Trefle", len(local), query)
    try:
        hits = await trefle.search_plants(query)
    except (trefle.TrefleAPIError, trefle.RateLimitError) as exc:
        logger.warning("catalog: Trefle search failed for %r: %s", query, exc)
        return local

    hit_ids = [pid for pid in (hit.get("id") for hit in hits) if isinstance(pid, int)]
    known = await _known_provider_ids(db, hit_ids)
    missing = [pid for pid in hit_ids if pid not in known]
    if not missing:
        return local

    details = await fetch_missing_records(missing, settings.SEARCH_FANOUT_LIMIT)

    # AsyncSession is not safe for concurrent use: writes stay sequential
    cached = 0
    for detail in details:
        try:
            record = extract_record(detail)
        except (ValidationRejected, ValueError) as exc:
            logger.debug("catalog: skipping search hit: %s", exc)
            continue
        await upsert_catalog_record(db, merge_records(record))
        cached += 1
    await db.commit()
    logger.info("catalog: cached %d/%d records for %r", cached, len(missing), query)

    return await _search_local(db, query, limit, edible)


async def get_catalog_record(
    db: AsyncSession, record_id: int, track_view: bool = True
) -> Optional[CatalogPlant]:
    plant = await db.get(CatalogPlant, record_id)
    if plant is None or not track_view:
        return plant

    await db.execute(
        update(CatalogPlant)
        .where(CatalogPlant.id == record_id)
        .values(view_count=CatalogPlant.view_count + 1, last_viewed=datetime.now(timezone.utc))
    )
    await db.commit()
    await db.refresh(plant)
    return plant


async def catalog_stats(db: AsyncSession) -> dict[str, int]:
    total = await db.scalar(select(func.count()).select_from(CatalogPlant))
    with_zones = await db.scalar(
        select(func.count()).select_from(CatalogPlant).where(CatalogPlant.min_zone.isnot(None))
    )
    enriched = await db.scalar(
        select(func.count()).select_from(CatalogPlant).where(CatalogPlant.enriched.is_(True))
    )
    return {
        "total": total or 0,
        "with_zones": with_zones or 0,
        "enriched": enriched or 0,
    }
