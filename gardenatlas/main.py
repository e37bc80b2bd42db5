import logging
import time
from datetime import datetime, timezone

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from gardenatlas.api.v1.router import api_router
from gardenatlas.core.config import settings
from gardenatlas.db.session import AsyncSessionLocal
from gardenatlas.models.logs import ApiRequestLog

logger = logging.getLogger(__name__)

app = FastAPI(
    title="GardenAtlas API",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next) -> Response:
    start = time.monotonic()
    response = await call_next(request)
    latency_ms = int((time.monotonic() - start) * 1000)

    # Best-effort: a failed log write never fails the request
    try:
        async with AsyncSessionLocal() as db:
            db.add(
                ApiRequestLog(
                    timestamp=datetime.now(timezone.utc),
                    method=request.method,
                    endpoint=str(request.url.path),
                    status_code=response.status_code,
                    latency_ms=latency_ms,
                    ip_address=request.client.host if request.client else None,
                )
            )
            await db.commit()
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("main: request log write failed: %s", exc)

    return response


@app.get("/api/health", tags=["health"])
async def health():
    return {"status": "ok"}


app.include_router(api_router, prefix="/api/v1")
