"""
ARQ task: enrich catalog records with Trefle detail + OpenFarm crop data.

For each record not yet enriched (most-viewed first): fetch the Trefle detail
record, look the plant up on OpenFarm by name, merge the two
(services.catalog.merge_records) and upsert. A record is marked enriched once
the secondary lookup has been attempted, match or not. Provider errors leave
it un-enriched so a later run retries it.

Triggered on-demand or by the daily cron. Can be triggered via:
  - API: POST /api/v1/sync/enrich
  - Manual script: scripts/run_enrich_catalog.py
"""
import logging
import time
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from gardenatlas.core.config import settings
from gardenatlas.db.session import AsyncSessionLocal
from gardenatlas.models.catalog import CatalogPlant
from gardenatlas.services import openfarm, trefle
from gardenatlas.services.catalog import merge_records, parse_secondary, upsert_catalog_record
from gardenatlas.services.email import format_report, send_email
from gardenatlas.services.extraction import ValidationRejected, extract_record
from gardenatlas.tasks.sync_utils import (
    FixedDelayLimiter,
    fmt_duration,
    is_source_running,
    log_sync,
)

logger = logging.getLogger(__name__)

SOURCE = "openfarm"


@dataclass
class EnrichResult:
    attempted: int = 0
    matched: int = 0
    unmatched: int = 0
    errors: int = 0
    skipped: bool = False
    duration_seconds: float = 0.0

    def summary(self) -> str:
        return (
            f"{self.attempted} attempted, {self.matched} matched, "
            f"{self.unmatched} unmatched, {self.errors} errors"
        )


async def run_enrichment(
    batch_size: Optional[int] = None,
    session_factory: Optional[async_sessionmaker] = None,
    request_delay: Optional[float] = None,
) -> EnrichResult:
    trefle.require_token()
    batch_size = batch_size or settings.ENRICH_BATCH_SIZE
    session_factory = session_factory or AsyncSessionLocal
    limiter = FixedDelayLimiter(
        settings.SYNC_REQUEST_DELAY_SECONDS if request_delay is None else request_delay
    )
    started = time.monotonic()
    result = EnrichResult()

    async with session_factory() as db:
        if await is_source_running(db, SOURCE):
            logger.info("enrich_catalog: run already in progress, skipping")
            result.skipped = True
            return result

        rows = await db.execute(
            select(CatalogPlant.provider_id, CatalogPlant.name)
            .where(CatalogPlant.enriched.is_(False))
            .order_by(CatalogPlant.view_count.desc(), CatalogPlant.id)
            .limit(batch_size)
        )
        pending = rows.all()
        logger.info("enrich_catalog: %d records pending", len(pending))
        await log_sync(db, SOURCE, "started", f"Enriching {len(pending)} records")

        try:
            for provider_id, name in pending:
                result.attempted += 1
                try:
                    await limiter.wait()
                    detail = await trefle.fetch_plant_detail(provider_id)
                    if detail is None:
                        raise trefle.TrefleAPIError(f"no detail for plant {provider_id}")
                    primary = extract_record(detail)

                    await limiter.wait()
                    crop = await openfarm.find_crop(primary.name or name)
                except (trefle.TrefleAPIError, trefle.RateLimitError, openfarm.OpenFarmAPIError) as exc:
                    logger.warning("enrich_catalog: provider error for plant %d: %s", provider_id, exc)
                    result.errors += 1
                    continue
                except (ValidationRejected, ValueError) as exc:
                    logger.warning("enrich_catalog: unusable detail for plant %d: %s", provider_id, exc)
                    result.errors += 1
                    continue

                secondary = parse_secondary(crop)
                if secondary is None:
                    result.unmatched += 1
                else:
                    result.matched += 1

                await upsert_catalog_record(db, merge_records(primary, secondary, enriched=True))
                await db.commit()
                logger.debug(
                    "enrich_catalog: %s %s",
                    primary.name, "(Trefle + OpenFarm)" if secondary else "(Trefle)",
                )

            result.duration_seconds = time.monotonic() - started
            await log_sync(db, SOURCE, "completed", result.summary(), result.matched + result.unmatched)

        except Exception as exc:
            logger.exception("enrich_catalog: unexpected error: %s", exc)
            try:
                await db.rollback()
                await log_sync(db, SOURCE, "failed", str(exc), result.matched + result.unmatched)
            except Exception:
                logger.exception("enrich_catalog: could not record failure")
            raise

    logger.info("enrich_catalog: complete in %s: %s", fmt_duration(result.duration_seconds), result.summary())
    return result


async def enrich_catalog(ctx: dict) -> dict:
    """ARQ entry point."""
    result = await run_enrichment()
    if not result.skipped:
        title = "Catalog Enrichment: Complete"
        await send_email(
            title,
            format_report(
                title,
                [
                    ("Attempted", result.attempted),
                    ("Matched on OpenFarm", result.matched),
                    ("No OpenFarm match", result.unmatched),
                    ("Errors", result.errors),
                    ("Duration", fmt_duration(result.duration_seconds)),
                ],
            ),
        )
    return {"attempted": result.attempted, "matched": result.matched, "errors": result.errors}
