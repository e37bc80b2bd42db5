from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class SyncCursorRead(BaseModel):
    source: str
    last_page: int
    total_synced: int
    is_complete: bool
    last_run: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SyncLogRead(BaseModel):
    id: int
    source: str
    status: str
    message: Optional[str] = None
    records_synced: int = 0
    timestamp: datetime

    model_config = {"from_attributes": True}


class CatalogStats(BaseModel):
    total: int
    with_zones: int
    enriched: int


class SyncStatusResponse(BaseModel):
    cursors: list[SyncCursorRead]
    running: dict[str, bool]
    catalog: CatalogStats
    last_log: Optional[SyncLogRead] = None


class SyncTriggerResponse(BaseModel):
    status: str
    job: str
    message: str
