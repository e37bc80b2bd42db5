from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class CatalogPlantSummary(BaseModel):
    id: int
    provider_id: int
    slug: Optional[str] = None
    name: str
    scientific_name: Optional[str] = None
    family: Optional[str] = None
    min_zone: Optional[str] = None
    max_zone: Optional[str] = None
    image_url: Optional[str] = None
    is_edible: Optional[bool] = None
    plant_type: Optional[str] = None
    enriched: bool = False
    view_count: int = 0

    model_config = {"from_attributes": True}


class CatalogPlantRead(BaseModel):
    id: int
    provider_id: int
    slug: Optional[str] = None
    secondary_slug: Optional[str] = None
    name: str
    scientific_name: Optional[str] = None
    common_names: list[str] = []
    family: Optional[str] = None
    genus: Optional[str] = None
    min_zone: Optional[str] = None
    max_zone: Optional[str] = None
    native_distributions: list[int] = []
    introduced_distributions: list[int] = []
    distribution_raw: Optional[Any] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    is_edible: Optional[bool] = None
    companion_plants: Optional[list[str]] = None
    plant_type: Optional[str] = None
    sun_requirement: Optional[list[str]] = None
    water_needs: Optional[str] = None
    soil_ph_min: Optional[float] = None
    soil_ph_max: Optional[float] = None
    mature_height_min: Optional[float] = None
    mature_height_max: Optional[float] = None
    days_to_maturity: Optional[int] = None
    data_sources: list[str] = []
    enriched: bool = False
    sync_count: int = 1
    view_count: int = 0
    last_viewed: Optional[datetime] = None
    last_synced: datetime
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CatalogPlantListResponse(BaseModel):
    items: list[CatalogPlantSummary]
    total: int
    page: int
    per_page: int
