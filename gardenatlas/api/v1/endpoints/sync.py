from arq.connections import ArqRedis
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gardenatlas.core.config import settings
from gardenatlas.db.session import get_db
from gardenatlas.models.sync import SyncCursor, SyncLog
from gardenatlas.schemas.sync import (
    CatalogStats,
    SyncCursorRead,
    SyncLogRead,
    SyncStatusResponse,
    SyncTriggerResponse,
)
from gardenatlas.services.catalog import catalog_stats
from gardenatlas.tasks.enrich_catalog import SOURCE as ENRICH_SOURCE
from gardenatlas.tasks.sync_utils import is_source_running

router = APIRouter(prefix="/sync", tags=["sync"])

# Path name → arq function name
SYNC_JOBS = {
    "catalog": "sync_catalog",
    "enrich": "enrich_catalog",
}


async def _get_arq_redis() -> ArqRedis:
    """Create an ArqRedis instance from the same Redis URL the worker uses."""
    from arq.connections import RedisSettings, create_pool
    redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)
    return await create_pool(redis_settings)


@router.get("/status", response_model=SyncStatusResponse)
async def sync_status(db: AsyncSession = Depends(get_db)):
    cursors = (await db.execute(select(SyncCursor).order_by(SyncCursor.source))).scalars().all()
    last_log = (
        await db.execute(select(SyncLog).order_by(SyncLog.timestamp.desc(), SyncLog.id.desc()).limit(1))
    ).scalar_one_or_none()

    sources = {settings.SYNC_SOURCE, ENRICH_SOURCE}
    running = {source: await is_source_running(db, source) for source in sorted(sources)}

    return SyncStatusResponse(
        cursors=[SyncCursorRead.model_validate(c) for c in cursors],
        running=running,
        catalog=CatalogStats(**await catalog_stats(db)),
        last_log=SyncLogRead.model_validate(last_log) if last_log else None,
    )


@router.get("/logs", response_model=list[SyncLogRead])
async def sync_logs(
    db: AsyncSession = Depends(get_db),
    source: str | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
):
    query = select(SyncLog)
    if source:
        query = query.where(SyncLog.source == source)
    result = await db.execute(query.order_by(SyncLog.timestamp.desc(), SyncLog.id.desc()).limit(limit))
    return [SyncLogRead.model_validate(log) for log in result.scalars().all()]


@router.post("/{job}", response_model=SyncTriggerResponse, status_code=202)
async def trigger_sync(job: str):
    """Queue a catalog sync or enrichment pass on the worker."""
    function = SYNC_JOBS.get(job)
    if function is None:
        raise HTTPException(status_code=404, detail=f"Unknown sync job '{job}'")

    pool = await _get_arq_redis()
    try:
        await pool.enqueue_job(function)
    finally:
        await pool.close()

    return SyncTriggerResponse(status="queued", job=function, message=f"{function} queued")
