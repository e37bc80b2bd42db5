"""
ARQ task: mirror the Trefle plant listing into catalog_plants.

Strategy
--------
Walk /plants page by page from the SyncCursor's last_page + 1. Each raw record
is normalized (services.extraction) and upserted (services.catalog) one at a
time; after the whole page is processed the cursor checkpoint is written. A
crash mid-page therefore re-runs that page on the next start, which is safe
because the upsert is idempotent and total_synced is only added at checkpoint.

Pacing
------
Every page fetch waits on a single FixedDelayLimiter (1 request/second by
default). An HTTP 429 sleeps for the cooldown and retries the same page, with
no retry cap. Any other fetch error skips the page and counts an estimated
page's worth of records as failed.

Termination
-----------
- empty page: end of catalog, cursor marked complete
- time budget spent: paused, the next run resumes at the cursor
- unexpected error: 'failed' SyncLog entry, exception re-raised

The budget is checked between pages only, never mid-page.

Runs hourly via cron. Can also be triggered via:
  - API: POST /api/v1/sync/catalog
  - Manual script: scripts/run_sync_catalog.py
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gardenatlas.core.config import settings
from gardenatlas.db.session import AsyncSessionLocal
from gardenatlas.services import trefle
from gardenatlas.services.catalog import merge_records, upsert_catalog_record
from gardenatlas.services.email import format_report, send_email
from gardenatlas.services.extraction import ValidationRejected, extract_record
from gardenatlas.tasks.sync_utils import (
    FixedDelayLimiter,
    fmt,
    fmt_duration,
    is_source_running,
    load_cursor,
    log_sync,
    mark_complete,
    save_checkpoint,
)

logger = logging.getLogger(__name__)

PageFetcher = Callable[[int], Awaitable[list[dict]]]

STATE_COMPLETE = "complete"
STATE_PAUSED = "paused"
STATE_SKIPPED = "skipped"


@dataclass
class SyncConfig:
    source: str = "trefle"
    max_runtime: float = 55 * 60  # seconds
    request_delay: float = 1.0
    rate_limit_cooldown: float = 60.0
    failed_page_estimate: int = 20

    @classmethod
    def from_settings(cls) -> "SyncConfig":
        return cls(
            source=settings.SYNC_SOURCE,
            max_runtime=settings.SYNC_MAX_RUNTIME_MINUTES * 60,
            request_delay=settings.SYNC_REQUEST_DELAY_SECONDS,
            rate_limit_cooldown=settings.SYNC_RATE_LIMIT_COOLDOWN_SECONDS,
            failed_page_estimate=settings.SYNC_FAILED_PAGE_ESTIMATE,
        )


@dataclass
class SyncResult:
    source: str
    start_page: int
    last_page: int = 0
    state: str = STATE_PAUSED
    pages: int = 0
    synced: int = 0
    rejected: int = 0
    failed: int = 0
    rate_limited: int = 0
    skipped_pages: list[int] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    def summary(self) -> str:
        return (
            f"{self.state}: {self.synced} synced, {self.rejected} rejected, {self.failed} failed "
            f"over {self.pages} pages (pages {self.start_page}-{self.last_page})"
        )


async def _fetch_with_cooldown(
    page: int,
    fetch_page: PageFetcher,
    limiter: FixedDelayLimiter,
    config: SyncConfig,
    result: SyncResult,
) -> list[dict]:
    """Fetch *page*, sleeping through 429s until the provider lets us in."""
    while True:
        await limiter.wait()
        try:
            return await fetch_page(page)
        except trefle.RateLimitError:
            result.rate_limited += 1
            logger.warning(
                "sync_catalog: rate limited on page %d, cooling down %ss (retry %d)",
                page, config.rate_limit_cooldown, result.rate_limited,
            )
            await asyncio.sleep(config.rate_limit_cooldown)


async def _process_page(db: AsyncSession, page: int, records: list[dict], result: SyncResult) -> int:
    """Extract and upsert each record in order. Returns the number saved."""
    saved = 0
    for raw in records:
        try:
            normalized = extract_record(raw)
        except ValidationRejected:
            result.rejected += 1
            continue
        except (AttributeError, TypeError, ValueError) as exc:
            logger.warning("sync_catalog: unreadable record on page %d: %s", page, exc)
            result.failed += 1
            continue

        try:
            await upsert_catalog_record(db, merge_records(normalized))
            await db.commit()
        except Exception as exc:
            logger.warning(
                "sync_catalog: save failed for plant %d on page %d: %s",
                normalized.provider_id, page, exc,
            )
            await db.rollback()
            result.failed += 1
            continue
        saved += 1
    return saved


async def run_sync(
    config: Optional[SyncConfig] = None,
    fetch_page: Optional[PageFetcher] = None,
    session_factory: Optional[async_sessionmaker] = None,
) -> SyncResult:
    """
    Run one time-boxed pass of the catalog synchronizer.

    *fetch_page* defaults to the Trefle listing, in which case the Trefle token
    is checked before anything else. *session_factory* defaults to the
    application session.
    """
    config = config or SyncConfig.from_settings()
    if fetch_page is None:
        trefle.require_token()
        fetch_page = trefle.fetch_plants_page
    session_factory = session_factory or AsyncSessionLocal

    started = time.monotonic()
    limiter = FixedDelayLimiter(config.request_delay)

    async with session_factory() as db:
        if await is_source_running(db, config.source):
            logger.info("sync_catalog: %s run already in progress, skipping", config.source)
            return SyncResult(source=config.source, start_page=0, state=STATE_SKIPPED)

        cursor = await load_cursor(db, config.source)
        if cursor.is_complete:
            logger.info("sync_catalog: %s catalog already complete, skipping", config.source)
            return SyncResult(
                source=config.source,
                start_page=cursor.last_page,
                last_page=cursor.last_page,
                state=STATE_COMPLETE,
            )

        start_page = cursor.last_page + 1
        already_synced = cursor.total_synced
        result = SyncResult(
            source=config.source,
            start_page=start_page,
            last_page=cursor.last_page,
            started_at=datetime.now(timezone.utc),
        )
        logger.info(
            "sync_catalog: starting %s at page %d (%d already synced)",
            config.source, start_page, already_synced,
        )
        await log_sync(db, config.source, "started", f"Resuming at page {start_page}")

        try:
            page = start_page
            while time.monotonic() - started < config.max_runtime:
                logger.info(
                    "sync_catalog: page %d [%ds elapsed]", page, int(time.monotonic() - started)
                )
                try:
                    records = await _fetch_with_cooldown(page, fetch_page, limiter, config, result)
                except Exception as exc:
                    logger.error("sync_catalog: fetch failed for page %d, skipping: %s", page, exc)
                    result.failed += config.failed_page_estimate
                    result.skipped_pages.append(page)
                    page += 1
                    continue

                if not records:
                    logger.info("sync_catalog: empty page %d, catalog complete", page)
                    await mark_complete(db, config.source)
                    result.state = STATE_COMPLETE
                    break

                saved = await _process_page(db, page, records, result)
                await save_checkpoint(db, config.source, page, saved)

                result.pages += 1
                result.synced += saved
                result.last_page = page
                logger.info(
                    "sync_catalog: page %d done (%d/%d saved, total=%d)",
                    page, saved, len(records), already_synced + result.synced,
                )
                page += 1

            if result.state != STATE_COMPLETE:
                logger.info("sync_catalog: time budget reached, pausing after page %d", result.last_page)

            result.duration_seconds = time.monotonic() - started
            result.finished_at = datetime.now(timezone.utc)
            await log_sync(db, config.source, "completed", result.summary(), result.synced)

        except Exception as exc:
            logger.exception("sync_catalog: unexpected error: %s", exc)
            result.duration_seconds = time.monotonic() - started
            result.finished_at = datetime.now(timezone.utc)
            try:
                await db.rollback()
                await log_sync(db, config.source, "failed", str(exc), result.synced)
            except Exception:
                logger.exception("sync_catalog: could not record failure for %s", config.source)
            raise

    rate = result.synced / result.duration_seconds * 60 if result.duration_seconds else 0
    logger.info(
        "sync_catalog: %s in %s (~%d plants/minute)",
        result.summary(), fmt_duration(result.duration_seconds), rate,
    )
    return result


async def send_sync_report(result: SyncResult) -> None:
    title = f"Catalog Sync ({result.source}): {result.state.capitalize()}"
    body = format_report(
        title,
        [
            ("Pages processed", result.pages),
            ("Page range", f"{result.start_page}-{result.last_page}"),
            ("Plants synced", result.synced),
            ("Rejected (no name)", result.rejected),
            ("Failed", result.failed),
            ("Rate-limit cooldowns", result.rate_limited),
            ("Skipped pages", ", ".join(map(str, result.skipped_pages)) or "none"),
            ("Started", fmt(result.started_at) if result.started_at else "N/A"),
            ("Finished", fmt(result.finished_at) if result.finished_at else "N/A"),
            ("Duration", fmt_duration(result.duration_seconds)),
        ],
    )
    await send_email(title, body)


async def sync_catalog(ctx: dict) -> dict:
    """ARQ entry point: one time-boxed sync pass, then the run report."""
    result = await run_sync()
    if result.state != STATE_SKIPPED:
        await send_sync_report(result)
    return {"state": result.state, "synced": result.synced, "last_page": result.last_page}
