"""
app/schemas/competitor_watch.py

Request and response schemas for the competitor watch endpoints.
Fields serialize as camelCase; request bodies accept either spelling.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SignalResponse(CamelModel):
    id: UUID
    type: str
    source_id: str
    title: str
    address: str | None = None
    when_iso: datetime
    link: str | None = None
    raw_data: dict[str, Any] | None = None
    priority: int
    competitor_match: str | None = None
    confidence: float | None = None
    analyzed: bool
    analysis_attempts: int = 0
    source: str
    jurisdiction: str
    created_at: datetime | None = None


class AnalysisResponse(CamelModel):
    id: UUID
    signal_id: UUID
    competitor_id: str
    analysis: str
    impact: str
    confidence: float
    recommendations: list[str] = Field(default_factory=list)
    model: str | None = None
    created_at: datetime | None = None


class EntityResponse(CamelModel):
    id: UUID
    name: str
    type: str
    keywords: list[str] = Field(default_factory=list)
    cik: str | None = None
    active: bool


class JurisdictionResponse(CamelModel):
    id: UUID
    key: str
    label: str
    state: str | None = None
    bbox: list[float] | None = None
    datasets: list[dict[str, Any]] = Field(default_factory=list)
    agendas: list[dict[str, Any]] = Field(default_factory=list)
    env_notices: list[str] = Field(default_factory=list)
    active: bool
    scrape_frequency: int
    last_scraped: datetime | None = None


class ScrapeJobResponse(CamelModel):
    id: UUID
    status: str
    source: str
    query: dict[str, Any] | None = None
    started_at: datetime
    finished_at: datetime | None = None
    records_found: int = 0
    records_new: int = 0
    execution_time_ms: int | None = None
    error_message: str | None = None


class DashboardSummary(CamelModel):
    total_signals: int
    competitor_matches: int
    high_priority: int
    jurisdictions_active: int
    competitors_tracked: int


class DashboardResponse(CamelModel):
    summary: DashboardSummary
    signals_by_type: dict[str, int] = Field(default_factory=dict)
    signals_by_jurisdiction: dict[str, int] = Field(default_factory=dict)
    signals_by_competitor: dict[str, int] = Field(default_factory=dict)
    high_priority_signals: list[SignalResponse] = Field(default_factory=list)
    recent_analyses: list[AnalysisResponse] = Field(default_factory=list)
    competitors: list[EntityResponse] = Field(default_factory=list)
    jurisdictions: list[JurisdictionResponse] = Field(default_factory=list)


class ScrapeRequest(CamelModel):
    days_back: int | None = Field(default=None, ge=1, le=365)


class CycleAcceptedResponse(CamelModel):
    cycle_id: UUID
    status: str
    days_back: int
    created_at: datetime | None = None


class CycleStatusResponse(CamelModel):
    id: UUID
    status: str
    trigger: str
    days_back: int
    started_at: datetime | None = None
    finished_at: datetime | None = None
    result_payload: dict[str, Any] | None = None
    report: str | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class EntityUpdateRequest(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    keywords: list[str] | None = None
    active: bool | None = None
    cik: str | None = None


class JurisdictionUpdateRequest(CamelModel):
    label: str | None = Field(default=None, min_length=1, max_length=255)
    active: bool | None = None
    scrape_frequency: int | None = Field(default=None, ge=1)
