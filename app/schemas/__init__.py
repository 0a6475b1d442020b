"""
app/schemas package marker.
"""

from app.schemas.competitor_watch import (
    AnalysisResponse,
    CycleAcceptedResponse,
    CycleStatusResponse,
    DashboardResponse,
    EntityResponse,
    EntityUpdateRequest,
    JurisdictionResponse,
    JurisdictionUpdateRequest,
    ScrapeJobResponse,
    ScrapeRequest,
    SignalResponse,
)

__all__ = [
    "AnalysisResponse",
    "CycleAcceptedResponse",
    "CycleStatusResponse",
    "DashboardResponse",
    "EntityResponse",
    "EntityUpdateRequest",
    "JurisdictionResponse",
    "JurisdictionUpdateRequest",
    "ScrapeJobResponse",
    "ScrapeRequest",
    "SignalResponse",
]
