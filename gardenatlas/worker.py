"""
ARQ worker: background task definitions.
Run with: python -m gardenatlas.worker
"""
import logging

from arq import cron
from arq.connections import RedisSettings

from gardenatlas.core.config import settings
from gardenatlas.tasks.enrich_catalog import enrich_catalog
from gardenatlas.tasks.sync_catalog import sync_catalog

logger = logging.getLogger(__name__)


# ── Worker settings ───────────────────────────────────────────────────────────


class WorkerSettings:
    redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)
    functions = [sync_catalog, enrich_catalog]
    cron_jobs = [
        # Each pass is time-boxed under an hour; the run guard skips overlaps
        cron(sync_catalog, minute=5),  # Hourly
        cron(enrich_catalog, hour=3, minute=30),  # Daily 3:30am UTC
    ]
    job_timeout = settings.SYNC_MAX_RUNTIME_MINUTES * 60 + 300
    on_startup = None
    on_shutdown = None


if __name__ == "__main__":
    from arq import run_worker

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    run_worker(WorkerSettings)
