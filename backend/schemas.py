import datetime as dt
from typing import Any, Literal

from pydantic import BaseModel, field_validator
from sqlmodel import SQLModel

DrillDownKind = Literal["month", "artist", "province"]


class PerformanceCreate(BaseModel):
    """Submitted performance fields, as they arrive from the entry form."""

    artist: str
    type: str
    province: str
    city: str | None = None
    venue: str | None = None
    notes: str | None = None
    date: dt.date | None = None

    @field_validator("artist", "type", "province", mode="before")
    @classmethod
    def validate_required(cls, v, info):
        if v is None or (isinstance(v, str) and not v.strip()):
            raise ValueError(f"{info.field_name} is required")
        return v

    @field_validator("city", "venue", "notes", "date", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        # Empty form fields mean "absent"
        if isinstance(v, str) and not v.strip():
            return None
        return v


class PerformanceResponse(SQLModel):
    id: int
    artist: str
    type: str
    province: str
    city: str | None = None
    venue: str | None = None
    notes: str | None = None
    date: dt.date | None = None
    poster: str | None = None
    created_at: dt.datetime


class PerformanceEnvelope(BaseModel):
    success: bool
    message: str
    data: PerformanceResponse


class PerformanceListResponse(BaseModel):
    success: bool
    data: list[PerformanceResponse]


class MessageResponse(BaseModel):
    success: bool
    message: str


class ArtistListResponse(BaseModel):
    success: bool
    data: list[str]


class MonthlyBucket(BaseModel):
    month: str  # Month label in the active locale
    count: int


class MonthlyDistribution(BaseModel):
    buckets: list[MonthlyBucket]
    total: int  # Sum of bucket counts; undated records are not included


class ArtistBucket(BaseModel):
    artist: str
    count: int


class ProvinceBucket(BaseModel):
    province: str  # Normalized name
    count: int


class DrillDownSelection(BaseModel):
    kind: DrillDownKind
    key: str
    matching_records: list[Any]


class Dashboard(BaseModel):
    record_count: int
    monthly: MonthlyDistribution
    artists: list[ArtistBucket]
    provinces: list[ProvinceBucket]


class DashboardResponse(BaseModel):
    success: bool
    data: Dashboard


class DrillDownResponse(BaseModel):
    success: bool
    kind: DrillDownKind
    key: str
    count: int
    data: list[PerformanceResponse]
