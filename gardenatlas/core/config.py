from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    DATABASE_URL: str

    # Redis (arq job queue)
    REDIS_URL: str = "redis://redis:6379/0"

    # Geocoding
    GOOGLE_MAPS_API_KEY: str = ""
    GOOGLE_GEOCODE_URL: str = "https://maps.googleapis.com/maps/api/geocode/json"

    # Zone lookup providers
    PHZMAPI_BASE_URL: str = "https://phzmapi.org"
    USDA_ZONE_QUERY_URL: str = (
        "https://gis.usna.usda.gov/arcgis/rest/services/USDA_Plant_Hardiness_Zones/MapServer/0/query"
    )
    PROVIDER_TIMEOUT_SECONDS: float = 10.0

    # Catalog providers
    TREFLE_API_KEY: str = ""
    TREFLE_BASE_URL: str = "https://trefle.io/api/v1"
    OPENFARM_BASE_URL: str = "https://openfarm.cc/api/v1"

    # Catalog sync
    SYNC_SOURCE: str = "trefle"
    SYNC_REQUEST_DELAY_SECONDS: float = 1.0
    SYNC_RATE_LIMIT_COOLDOWN_SECONDS: float = 60.0
    SYNC_MAX_RUNTIME_MINUTES: int = 55
    SYNC_FAILED_PAGE_ESTIMATE: int = 20
    ENRICH_BATCH_SIZE: int = 50

    # Catalog search
    SEARCH_MIN_LOCAL_RESULTS: int = 5
    SEARCH_FANOUT_LIMIT: int = 10

    # Email
    EMAIL_HOST: str = ""
    EMAIL_PORT: int = 587
    EMAIL_USERNAME: str = ""
    EMAIL_PASSWORD: str = ""
    EMAIL_FROM: str = "noreply@gardenatlas.local"
    EMAIL_TO: str = ""
    TIMEZONE: str = "America/Chicago"

    # App
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:5174"

    @property
    def origins(self) -> List[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",")]


settings = Settings()
