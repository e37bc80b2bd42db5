from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Enum, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from gardenatlas.db.base import Base

ZONE_METHOD_PROVIDER_API = "provider_api"
ZONE_METHOD_APPROXIMATION = "geographic_approximation"


class ResolvedAddress(Base):
    __tablename__ = "geocoded_addresses"

    id: Mapped[int] = mapped_column(primary_key=True)
    # Canonical provider-formatted address; the cache key
    full_address: Mapped[str] = mapped_column(Text, unique=True, nullable=False)

    street_address: Mapped[Optional[str]] = mapped_column(String(255))
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(10))
    zip_code: Mapped[Optional[str]] = mapped_column(String(20))
    country: Mapped[str] = mapped_column(String(10), default="US")

    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lng: Mapped[float] = mapped_column(Float, nullable=False)

    zone_id: Mapped[str] = mapped_column(String(5), nullable=False)
    zone_method: Mapped[str] = mapped_column(
        Enum(ZONE_METHOD_PROVIDER_API, ZONE_METHOD_APPROXIMATION, name="zone_method_enum")
    )
    lookup_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
