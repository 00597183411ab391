"""Exploration Schemas — Pydantic models for exploration, catalog and admin endpoints.

Invariants:
    - VisitRequest.samples is passed to the core untouched: malformed samples
      (GpsSample validation failures, including NaN and infinities) are dropped
      by filter_valid_samples, not rejected wholesale here
    - District names stripped and non-empty
    - CatalogSeed accepts the seed-file field names (lat/lon) as given

Design Decisions:
    - Response models for fixed shapes; assignment listings are plain dicts built
      by the service
"""

from uuid import UUID
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class InitializeRequest(BaseModel):
    """Start exploration from a hometown district."""
    hometown_district: str = Field(min_length=1, max_length=100)

    @field_validator("hometown_district")
    @classmethod
    def strip_district(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("hometown_district cannot be empty or whitespace")
        return v


class InitializeResponse(BaseModel):
    message: str
    hometown_district: str
    total_assigned: int


class GpsSample(BaseModel):
    """One GPS fix. Finite numbers only; bools and numeric strings are malformed."""
    model_config = ConfigDict(
        strict=True, allow_inf_nan=False, populate_by_name=True,
    )

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy_meters: float = Field(ge=0, alias="accuracyMeters")


class VisitRequest(BaseModel):
    """GPS-verified visit. Samples are validated one by one as GpsSample in the core."""
    place_id: UUID
    samples: list[Any] = Field(max_length=50)


class RerollRequest(BaseModel):
    reason: str | None = Field(None, max_length=200)
    reason_detail: str | None = Field(None, max_length=500)


class AdminOverrideRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=128)
    place_id: UUID
    reason: str = Field(min_length=1, max_length=500)


class ProgressResponse(BaseModel):
    total_assigned: int
    total_visited: int
    unlocked_districts: list[str]
    unlocked_provinces: list[str]


class VisitResponse(BaseModel):
    message: str
    district: str
    xp_awarded: int = 0
    district_unlocked: bool = False
    progress: ProgressResponse | None = None


class DistrictProgress(BaseModel):
    district: str
    province: str
    assigned_count: int
    visited_count: int
    unlocked_at: str | None = None


class DistrictsResponse(BaseModel):
    districts: list[DistrictProgress]


# --- Catalog seeding ----------------------------------------------------------

class SeedAttraction(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    type: str = Field("attraction", max_length=50)
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)


class SeedDistrict(BaseModel):
    district: str = Field(min_length=1, max_length=100)
    province: str = Field(min_length=1, max_length=100)
    attractions: list[SeedAttraction]


class CatalogSeed(BaseModel):
    districts: list[SeedDistrict] = Field(min_length=1)


class PlaceResponse(BaseModel):
    id: UUID
    district: str
    province: str
    name: str
    type: str
    latitude: float
    longitude: float
