from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ZoneLookupRequest(BaseModel):
    address: str = Field(..., min_length=1, max_length=500)

    @field_validator("address")
    @classmethod
    def strip_address(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("address must not be blank")
        return value


class ZoneResolutionRead(BaseModel):
    zone: str
    lat: float
    lng: float
    full_address: str
    cached: bool
    method: str
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None

    model_config = {"from_attributes": True}
