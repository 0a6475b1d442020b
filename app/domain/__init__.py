"""
app/domain package marker.
"""

from app.domain.competitor_watch import (
    AnalysisInput,
    CycleResult,
    ScrapeOptions,
    ScrapeResult,
    ScrapeTotals,
    SignalInput,
)

__all__ = [
    "AnalysisInput",
    "CycleResult",
    "ScrapeOptions",
    "ScrapeResult",
    "ScrapeTotals",
    "SignalInput",
]
