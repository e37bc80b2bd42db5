from gardenatlas.models.address import ResolvedAddress
from gardenatlas.models.catalog import CatalogPlant
from gardenatlas.models.sync import SyncCursor, SyncLog
from gardenatlas.models.logs import ApiRequestLog

__all__ = [
    "ResolvedAddress",
    "CatalogPlant",
    "SyncCursor",
    "SyncLog",
    "ApiRequestLog",
]
