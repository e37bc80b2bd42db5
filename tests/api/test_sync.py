from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from gardenatlas.models.sync import SyncCursor, SyncLog


async def test_sync_status(client: AsyncClient, db: AsyncSession):
    db.add(SyncCursor(source="trefle", last_page=12, total_synced=240, is_complete=False))
    db.add(SyncLog(source="trefle", status="started", message="Resuming at page 13", timestamp=datetime.now(timezone.utc)))
    await db.commit()

    res = await client.get("/api/v1/sync/status")
    assert res.status_code == 200
    data = res.json()
    assert data["cursors"][0]["source"] == "trefle"
    assert data["cursors"][0]["last_page"] == 12
    assert data["running"] == {"openfarm": False, "trefle": True}
    assert data["catalog"] == {"total": 0, "with_zones": 0, "enriched": 0}
    assert data["last_log"]["status"] == "started"


async def test_sync_logs(client: AsyncClient, db: AsyncSession):
    db.add(SyncLog(source="trefle", status="started", timestamp=datetime(2026, 3, 1, 4, 0, tzinfo=timezone.utc)))
    db.add(SyncLog(source="trefle", status="completed", records_synced=60, timestamp=datetime(2026, 3, 1, 4, 55, tzinfo=timezone.utc)))
    db.add(SyncLog(source="openfarm", status="failed", message="boom", timestamp=datetime(2026, 3, 2, 3, 30, tzinfo=timezone.utc)))
    await db.commit()

    res = await client.get("/api/v1/sync/logs")
    assert res.status_code == 200
    assert [log["status"] for log in res.json()] == ["failed", "completed", "started"]

    res = await client.get("/api/v1/sync/logs", params={"source": "trefle", "limit": 1})
    data = res.json()
    assert len(data) == 1
    assert data[0]["records_synced"] == 60


async def test_trigger_sync_enqueues_job(client: AsyncClient):
    pool = AsyncMock()
    with patch("gardenatlas.api.v1.endpoints.sync._get_arq_redis", AsyncMock(return_value=pool)):
        res = await client.post("/api/v1/sync/catalog")
    assert res.status_code == 202
    assert res.json()["job"] == "sync_catalog"
    pool.enqueue_job.assert_awaited_once_with("sync_catalog")
    pool.close.assert_awaited_once()


async def test_trigger_enrich(client: AsyncClient):
    pool = AsyncMock()
    with patch("gardenatlas.api.v1.endpoints.sync._get_arq_redis", AsyncMock(return_value=pool)):
        res = await client.post("/api/v1/sync/enrich")
    assert res.status_code == 202
    pool.enqueue_job.assert_awaited_once_with("enrich_catalog")


async def test_trigger_unknown_job(client: AsyncClient):
    res = await client.post("/api/v1/sync/everything")
    assert res.status_code == 404
