"""
app/domain/competitor_watch.py

Domain models shared by adapters, the signal store and the orchestrator.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class ScrapeOptions:
    days_back: int = 30


@dataclass(frozen=True)
class ScrapeResult:
    """
    Outcome of one adapter run.
    """

    records_found: int
    records_new: int


@dataclass
class ScrapeTally:
    """
    Mutable counters an adapter fills while iterating source records.
    """

    found: int = 0
    new: int = 0

    def to_result(self) -> ScrapeResult:
        return ScrapeResult(records_found=self.found, records_new=self.new)


@dataclass(frozen=True)
class SignalInput:
    """
    Normalized candidate signal ready for persistence.
    """

    type: str
    source_id: str
    title: str
    when_iso: datetime
    priority: int
    source: str
    jurisdiction: str
    address: str | None = None
    link: str | None = None
    raw_data: dict[str, Any] | None = None
    competitor_match: str | None = None
    confidence: float | None = None


@dataclass(frozen=True)
class AnalysisInput:
    signal_id: uuid.UUID
    competitor_id: str
    analysis: str
    impact: str
    confidence: float
    recommendations: list[str]
    model: str | None = None


@dataclass
class CategoryTotals:
    found: int = 0
    new: int = 0

    def add(self, result: ScrapeResult) -> None:
        self.found += result.records_found
        self.new += result.records_new


@dataclass
class ScrapeTotals:
    """
    Aggregated found/new counts per source category.
    """

    permits: CategoryTotals = field(default_factory=CategoryTotals)
    agendas: CategoryTotals = field(default_factory=CategoryTotals)
    sec: CategoryTotals = field(default_factory=CategoryTotals)
    failed_sources: int = 0

    def merge(self, other: "ScrapeTotals") -> None:
        for name in ("permits", "agendas", "sec"):
            mine: CategoryTotals = getattr(self, name)
            theirs: CategoryTotals = getattr(other, name)
            mine.found += theirs.found
            mine.new += theirs.new
        self.failed_sources += other.failed_sources

    @property
    def total(self) -> CategoryTotals:
        return CategoryTotals(
            found=self.permits.found + self.agendas.found + self.sec.found,
            new=self.permits.new + self.agendas.new + self.sec.new,
        )


@dataclass
class AnalysisTotals:
    processed: int = 0
    analyzed: int = 0
    skipped_no_match: int = 0
    failed: int = 0
    deferred: int = 0


@dataclass
class CycleResult:
    """
    Outcome of one full competitor watch cycle.
    """

    status: str
    days_back: int
    scrape: ScrapeTotals = field(default_factory=ScrapeTotals)
    analysis: AnalysisTotals = field(default_factory=AnalysisTotals)
    report: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "days_back": self.days_back,
            "scrape": {
                "permits": asdict(self.scrape.permits),
                "agendas": asdict(self.scrape.agendas),
                "sec": asdict(self.scrape.sec),
                "total": asdict(self.scrape.total),
                "failed_sources": self.scrape.failed_sources,
            },
            "analysis": asdict(self.analysis),
        }


@dataclass
class DashboardData:
    """
    Seven-day activity summary served to the dashboard.
    """

    total_signals: int
    competitor_matches: int
    high_priority: int
    jurisdictions_active: int
    competitors_tracked: int
    signals_by_type: dict[str, int]
    signals_by_jurisdiction: dict[str, int]
    signals_by_competitor: dict[str, int]
    high_priority_signals: list[Any]
    recent_analyses: list[Any]
    competitors: list[Any]
    jurisdictions: list[Any]
