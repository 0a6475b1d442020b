"""
Storage contract for signals, jobs, watchlist records, analyses and cycles.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from app.domain.competitor_watch import AnalysisInput, SignalInput
from app.scraping.config.models import EntityConfig, JurisdictionConfig
from db.models import (
    CompetitorAnalysis,
    CompetitorEntity,
    CompetitorSignal,
    Jurisdiction,
    ScrapeJob,
    WatchCycle,
)


class SignalStore(ABC):
    """
    Persistence boundary used by adapters, the job tracker and the orchestrator.
    """

    # Scrape jobs

    @abstractmethod
    def create_job(
        self,
        *,
        source: str,
        query: dict[str, Any] | None,
        started_at: datetime,
    ) -> ScrapeJob:
        """Persist a job in `running` state."""

    @abstractmethod
    def finish_job(
        self,
        job_id: uuid.UUID,
        *,
        status: str,
        finished_at: datetime,
        execution_time_ms: int,
        records_found: int = 0,
        records_new: int = 0,
        error_message: str | None = None,
    ) -> ScrapeJob:
        """
        Move a running job to a terminal status. Raises JobStateError when
        the job is unknown or already terminal.
        """

    @abstractmethod
    def list_jobs(self, *, limit: int = 50, status: str | None = None) -> list[ScrapeJob]:
        """Most recent jobs first."""

    # Signals

    @abstractmethod
    def insert_signal(self, signal: SignalInput) -> bool:
        """
        Insert unless (source, jurisdiction, source_id) already exists.
        Returns True only when a new row was written.
        """

    @abstractmethod
    def list_signals(
        self,
        *,
        jurisdiction: str | None = None,
        signal_type: str | None = None,
        competitor: str | None = None,
        since: datetime | None = None,
        min_priority: int | None = None,
        limit: int = 100,
    ) -> list[CompetitorSignal]:
        """Signals ordered by event time, newest first."""

    @abstractmethod
    def pending_signals(self, *, max_attempts: int, limit: int) -> list[CompetitorSignal]:
        """Unanalyzed signals still below the attempt cap, highest priority first."""

    @abstractmethod
    def mark_signal_analyzed(self, signal_id: uuid.UUID, *, confidence: float | None = None) -> None:
        """Flip analyzed to true; keeps the existing confidence when None."""

    @abstractmethod
    def mark_unmatched_signals_analyzed(self) -> int:
        """Bulk-mark every pending signal without a competitor match; returns the row count."""

    @abstractmethod
    def record_analysis_failure(self, signal_id: uuid.UUID) -> None:
        """Increment analysis_attempts for a signal left unanalyzed."""

    @abstractmethod
    def signal_counts(self, *, since: datetime, group_by: str) -> dict[str, int]:
        """Signal counts since a timestamp grouped by type, jurisdiction or competitor_match."""

    @abstractmethod
    def count_signals(self, *, since: datetime | None = None, matched_only: bool = False) -> int:
        """Count signals, optionally only competitor-matched ones."""

    # Analyses

    @abstractmethod
    def save_analysis(self, analysis: AnalysisInput) -> CompetitorAnalysis:
        """Persist one enrichment result."""

    @abstractmethod
    def list_analyses(
        self,
        *,
        competitor_id: str | None = None,
        limit: int = 20,
    ) -> list[CompetitorAnalysis]:
        """Newest analyses first."""

    # Watchlist

    @abstractmethod
    def ensure_jurisdiction(self, config: JurisdictionConfig) -> bool:
        """Create the jurisdiction if its key is absent. Returns True when created."""

    @abstractmethod
    def ensure_entity(self, config: EntityConfig) -> bool:
        """Create the entity if its name is absent. Returns True when created."""

    @abstractmethod
    def list_jurisdictions(self, *, active: bool | None = None) -> list[Jurisdiction]:
        """Jurisdictions ordered by key."""

    @abstractmethod
    def list_entities(self, *, active: bool | None = None) -> list[CompetitorEntity]:
        """Entities in declared (creation) order."""

    @abstractmethod
    def update_jurisdiction(self, key: str, changes: dict[str, Any]) -> Jurisdiction | None:
        """Apply administrative changes; None when the key is unknown."""

    @abstractmethod
    def update_entity(self, entity_id: uuid.UUID, changes: dict[str, Any]) -> CompetitorEntity | None:
        """Apply administrative changes; None when the id is unknown."""

    @abstractmethod
    def mark_jurisdiction_scraped(self, key: str, *, scraped_at: datetime) -> None:
        """Record when a jurisdiction's sources last ran."""

    # Watch cycles

    @abstractmethod
    def create_cycle(self, *, trigger: str, days_back: int) -> WatchCycle:
        """Persist a queued cycle."""

    @abstractmethod
    def update_cycle(self, cycle_id: uuid.UUID, changes: dict[str, Any]) -> WatchCycle | None:
        """Update cycle status/result fields."""

    @abstractmethod
    def get_cycle(self, cycle_id: uuid.UUID) -> WatchCycle | None:
        """Cycle by id."""
