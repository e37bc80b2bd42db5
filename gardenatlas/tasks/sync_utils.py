"""
Shared utilities for catalog sync tasks.

Provides the SyncCursor checkpoint helpers, SyncLog run lifecycle, the
fixed-delay request limiter and report formatting, used by sync_catalog and
enrich_catalog.
"""
import asyncio
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from gardenatlas.core.config import settings
from gardenatlas.models.sync import SyncCursor, SyncLog

logger = logging.getLogger(__name__)

_tz = ZoneInfo(settings.TIMEZONE)
_STALE_THRESHOLD = timedelta(hours=2)


# ── Time helpers ──────────────────────────────────────────────────────────────

def fmt(dt: datetime) -> str:
    """Format a datetime in local time as 'Monday, Feb 24 at 4:00 AM CST'."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(_tz).strftime("%A, %b %-d at %-I:%M %p %Z")


def fmt_duration(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs}s"


# ── Rate limiting ─────────────────────────────────────────────────────────────

class FixedDelayLimiter:
    """
    Single-slot limiter: successive wait() calls return at least *delay* seconds apart.

    Not a token bucket; there is no burst allowance. Callers share one instance
    per provider so every request passes through the same gate.
    """

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self._last: Optional[float] = None
        self._lock = asyncio.Lock()

    async def wait(self) -> None:
        async with self._lock:
            if self._last is not None:
                remaining = self.delay - (time.monotonic() - self._last)
                if remaining > 0:
                    await asyncio.sleep(remaining)
            self._last = time.monotonic()


# ── SyncCursor checkpoints ────────────────────────────────────────────────────

async def load_cursor(db: AsyncSession, source: str) -> SyncCursor:
    """Return the cursor for *source*, creating it at page 0 on first use."""
    result = await db.execute(select(SyncCursor).where(SyncCursor.source == source))
    cursor = result.scalar_one_or_none()
    if cursor is None:
        cursor = SyncCursor(source=source, last_page=0, total_synced=0, is_complete=False)
        db.add(cursor)
        await db.commit()
        logger.info("sync_utils: created cursor for %s", source)
    return cursor


async def save_checkpoint(db: AsyncSession, source: str, page: int, synced: int) -> None:
    """Record *page* as fully processed. The cursor never moves backwards."""
    await db.execute(
        update(SyncCursor)
        .where(SyncCursor.source == source, SyncCursor.last_page < page)
        .values(
            last_page=page,
            total_synced=SyncCursor.total_synced + synced,
            last_run=datetime.now(timezone.utc),
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()


async def mark_complete(db: AsyncSession, source: str) -> None:
    await db.execute(
        update(SyncCursor)
        .where(SyncCursor.source == source)
        .values(is_complete=True, last_run=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    await db.commit()


# ── SyncLog lifecycle ─────────────────────────────────────────────────────────

async def log_sync(
    db: AsyncSession, source: str, status: str, message: str, records_synced: int = 0
) -> None:
    """Append a SyncLog entry and commit it."""
    db.add(
        SyncLog(
            source=source,
            status=status,
            message=message[:4000] if message else None,
            records_synced=records_synced,
            timestamp=datetime.now(timezone.utc),
        )
    )
    await db.commit()


async def is_source_running(db: AsyncSession, source: str) -> bool:
    """True when the latest SyncLog for *source* is a 'started' entry from the last 2 hours."""
    result = await db.execute(
        select(SyncLog.status, SyncLog.timestamp)
        .where(SyncLog.source == source)
        .order_by(SyncLog.timestamp.desc(), SyncLog.id.desc())
        .limit(1)
    )
    latest = result.first()
    if latest is None or latest.status != "started":
        return False
    started = latest.timestamp
    if started.tzinfo is None:
        started = started.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc) - started < _STALE_THRESHOLD
