"""Pydantic models for API request/response serialization."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from records_timeline.timeline.items import TimelineCategory, TimelineFilter


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------

class TimelineItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: TimelineCategory
    date: datetime
    title: str
    description: str
    status: str | None = None
    icon: str
    color: str
    created_by: str | None = None


class SummaryCardOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    title: str
    count: int
    icon: str
    color: str


class FilterOptionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: TimelineFilter
    label: str
    icon: str | None = None


class SkippedRecords(BaseModel):
    invalid: int = 0
    undated: int = 0


class TimelineResponse(BaseModel):
    patient_id: UUID
    category: TimelineFilter
    status: str
    total: int
    items: list[TimelineItemOut]
    summary: list[SummaryCardOut]
    sources: dict[str, str]
    skipped: SkippedRecords


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------

class NoteCreate(BaseModel):
    content: str = Field(..., max_length=20000)
    created_by: str = Field(..., min_length=1, max_length=128)


class NoteUpdate(BaseModel):
    content: str = Field(..., max_length=20000)
    actor: str = Field("api_user", min_length=1, max_length=128)


class NoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    patient_id: UUID
    content: str
    created_by: str
    created_at: datetime
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    status: str = "healthy"
    environment: str
    database: str = "connected"
