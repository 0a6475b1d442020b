"""
SQLAlchemy-backed signal store.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import asdict
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from app.domain.competitor_watch import AnalysisInput, SignalInput
from app.scraping.config.loader import agenda_to_mapping, dataset_to_mapping
from app.scraping.config.models import EntityConfig, JurisdictionConfig
from app.scraping.errors import JobStateError
from app.scraping.storage.base import SignalStore
from db.models import (
    CompetitorAnalysis,
    CompetitorEntity,
    CompetitorSignal,
    Jurisdiction,
    ScrapeJob,
    WatchCycle,
)
from db.models.scrape_job import ScrapeJobStatus
from db.repositories import (
    ScrapeJobRepository,
    SignalRepository,
    WatchCycleRepository,
    WatchlistRepository,
)

_JURISDICTION_FIELDS = {"label", "active", "scrape_frequency", "datasets", "agendas", "env_notices"}
_ENTITY_FIELDS = {"name", "keywords", "active", "cik", "type"}


class SQLAlchemySignalStore(SignalStore):
    """
    Each operation runs in its own short transaction from the session factory,
    so the store is safe to share between adapter threads.
    """

    def __init__(self, *, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_job(
        self,
        *,
        source: str,
        query: dict[str, Any] | None,
        started_at: datetime,
    ) -> ScrapeJob:
        with self._transaction() as session:
            return ScrapeJobRepository(session).create_job(
                source=source,
                query=query,
                started_at=started_at,
            )

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
        if status not in ScrapeJobStatus.TERMINAL:
            raise JobStateError(f"'{status}' is not a terminal job status.")

        with self._transaction() as session:
            repository = ScrapeJobRepository(session)
            job = repository.get_job(job_id)
            if job is None:
                raise JobStateError(f"Scrape job {job_id} does not exist.")
            if job.status in ScrapeJobStatus.TERMINAL:
                raise JobStateError(f"Scrape job {job_id} is already {job.status}.")
            return repository.finish_job(
                job,
                status=status,
                finished_at=finished_at,
                execution_time_ms=execution_time_ms,
                records_found=records_found,
                records_new=records_new,
                error_message=error_message,
            )

    def list_jobs(self, *, limit: int = 50, status: str | None = None) -> list[ScrapeJob]:
        with self._transaction() as session:
            return ScrapeJobRepository(session).list_jobs(limit=limit, status=status)

    def insert_signal(self, signal: SignalInput) -> bool:
        with self._transaction() as session:
            return SignalRepository(session).insert_if_absent(asdict(signal)) is not None

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
        with self._transaction() as session:
            return SignalRepository(session).list_signals(
                jurisdiction=jurisdiction,
                signal_type=signal_type,
                competitor=competitor,
                since=since,
                min_priority=min_priority,
                limit=limit,
            )

    def pending_signals(self, *, max_attempts: int, limit: int) -> list[CompetitorSignal]:
        with self._transaction() as session:
            return SignalRepository(session).list_pending(max_attempts=max_attempts, limit=limit)

    def mark_signal_analyzed(self, signal_id: uuid.UUID, *, confidence: float | None = None) -> None:
        with self._transaction() as session:
            SignalRepository(session).mark_analyzed(signal_id, confidence=confidence)

    def mark_unmatched_signals_analyzed(self) -> int:
        with self._transaction() as session:
            return SignalRepository(session).mark_unmatched_analyzed()

    def record_analysis_failure(self, signal_id: uuid.UUID) -> None:
        with self._transaction() as session:
            SignalRepository(session).increment_attempts(signal_id)

    def signal_counts(self, *, since: datetime, group_by: str) -> dict[str, int]:
        with self._transaction() as session:
            return SignalRepository(session).count_by(group_by=group_by, since=since)

    def count_signals(self, *, since: datetime | None = None, matched_only: bool = False) -> int:
        with self._transaction() as session:
            return SignalRepository(session).count(since=since, matched_only=matched_only)

    def save_analysis(self, analysis: AnalysisInput) -> CompetitorAnalysis:
        with self._transaction() as session:
            return SignalRepository(session).add_analysis(CompetitorAnalysis(**asdict(analysis)))

    def list_analyses(
        self,
        *,
        competitor_id: str | None = None,
        limit: int = 20,
    ) -> list[CompetitorAnalysis]:
        with self._transaction() as session:
            return SignalRepository(session).list_analyses(competitor_id=competitor_id, limit=limit)

    def ensure_jurisdiction(self, config: JurisdictionConfig) -> bool:
        with self._transaction() as session:
            repository = WatchlistRepository(session)
            if repository.get_jurisdiction(config.key) is not None:
                return False
            repository.create_jurisdiction(
                key=config.key,
                label=config.label,
                state=config.state,
                bbox=list(config.bbox) if config.bbox else None,
                datasets=[dataset_to_mapping(item) for item in config.datasets],
                agendas=[agenda_to_mapping(item) for item in config.agendas],
                env_notices=list(config.env_notices),
                active=config.active,
                scrape_frequency=config.scrape_frequency,
            )
            return True

    def ensure_entity(self, config: EntityConfig) -> bool:
        with self._transaction() as session:
            repository = WatchlistRepository(session)
            if repository.get_entity_by_name(config.name) is not None:
                return False
            repository.create_entity(
                name=config.name,
                type=config.type,
                keywords=list(config.keywords),
                cik=config.cik,
                active=config.active,
            )
            return True

    def list_jurisdictions(self, *, active: bool | None = None) -> list[Jurisdiction]:
        with self._transaction() as session:
            return WatchlistRepository(session).list_jurisdictions(active=active)

    def list_entities(self, *, active: bool | None = None) -> list[CompetitorEntity]:
        with self._transaction() as session:
            return WatchlistRepository(session).list_entities(active=active)

    def update_jurisdiction(self, key: str, changes: dict[str, Any]) -> Jurisdiction | None:
        _reject_unknown_fields(changes, _JURISDICTION_FIELDS)
        with self._transaction() as session:
            jurisdiction = WatchlistRepository(session).get_jurisdiction(key)
            if jurisdiction is None:
                return None
            for field_name, value in changes.items():
                setattr(jurisdiction, field_name, value)
            session.flush()
            return jurisdiction

    def update_entity(self, entity_id: uuid.UUID, changes: dict[str, Any]) -> CompetitorEntity | None:
        _reject_unknown_fields(changes, _ENTITY_FIELDS)
        with self._transaction() as session:
            entity = WatchlistRepository(session).get_entity(entity_id)
            if entity is None:
                return None
            for field_name, value in changes.items():
                setattr(entity, field_name, value)
            session.flush()
            return entity

    def mark_jurisdiction_scraped(self, key: str, *, scraped_at: datetime) -> None:
        with self._transaction() as session:
            jurisdiction = WatchlistRepository(session).get_jurisdiction(key)
            if jurisdiction is not None:
                jurisdiction.last_scraped = scraped_at

    def create_cycle(self, *, trigger: str, days_back: int) -> WatchCycle:
        with self._transaction() as session:
            return WatchCycleRepository(session).create_cycle(trigger=trigger, days_back=days_back)

    def update_cycle(self, cycle_id: uuid.UUID, changes: dict[str, Any]) -> WatchCycle | None:
        with self._transaction() as session:
            return WatchCycleRepository(session).update_cycle(cycle_id, changes)

    def get_cycle(self, cycle_id: uuid.UUID) -> WatchCycle | None:
        with self._transaction() as session:
            return WatchCycleRepository(session).get_cycle(cycle_id)


def _reject_unknown_fields(changes: dict[str, Any], allowed: set[str]) -> None:
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Unsupported update fields: {', '.join(sorted(unknown))}.")
