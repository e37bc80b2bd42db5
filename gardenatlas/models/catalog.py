from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from gardenatlas.db.base import Base


class CatalogPlant(Base):
    __tablename__ = "catalog_plants"

    id: Mapped[int] = mapped_column(primary_key=True)
    provider_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)  # Trefle id
    slug: Mapped[Optional[str]] = mapped_column(String(200))
    secondary_slug: Mapped[Optional[str]] = mapped_column(String(200))  # OpenFarm crop slug

    name: Mapped[str] = mapped_column(String(200), index=True)
    scientific_name: Mapped[Optional[str]] = mapped_column(String(200), index=True)
    common_names: Mapped[list[str]] = mapped_column(JSON, default=list)
    family: Mapped[Optional[str]] = mapped_column(String(100))
    genus: Mapped[Optional[str]] = mapped_column(String(100))

    # Zone codes, e.g. "5a"; compared via extraction.zone_sort_key
    min_zone: Mapped[Optional[str]] = mapped_column(String(5))
    max_zone: Mapped[Optional[str]] = mapped_column(String(5))
    # band * 2 + (0 for "a", 1 for "b"); SQL-comparable form of the zone codes
    min_zone_rank: Mapped[Optional[int]] = mapped_column(Integer, index=True)
    max_zone_rank: Mapped[Optional[int]] = mapped_column(Integer)

    # TDWG region codes
    native_distributions: Mapped[list[int]] = mapped_column(JSON, default=list)
    introduced_distributions: Mapped[list[int]] = mapped_column(JSON, default=list)
    distribution_raw: Mapped[Optional[Any]] = mapped_column(JSON)

    description: Mapped[Optional[str]] = mapped_column(Text)
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    is_edible: Mapped[Optional[bool]] = mapped_column(Boolean)

    # Growth attributes; Trefle light/humidity are 0-10 scores kept as text
    plant_type: Mapped[Optional[str]] = mapped_column(String(50))
    sun_requirement: Mapped[Optional[list[str]]] = mapped_column(JSON(none_as_null=True))
    water_needs: Mapped[Optional[str]] = mapped_column(String(20))
    soil_ph_min: Mapped[Optional[float]] = mapped_column(Float)
    soil_ph_max: Mapped[Optional[float]] = mapped_column(Float)
    mature_height_min: Mapped[Optional[float]] = mapped_column(Float)  # cm
    mature_height_max: Mapped[Optional[float]] = mapped_column(Float)  # cm
    days_to_maturity: Mapped[Optional[int]] = mapped_column(Integer)  # OpenFarm growing_degree_days

    companion_plants: Mapped[Optional[list[str]]] = mapped_column(JSON)
    data_sources: Mapped[list[str]] = mapped_column(JSON, default=list)

    enriched: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sync_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    last_synced: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # Local popularity; never sourced externally
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False, index=True)
    last_viewed: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
