"""
app/services/competitor_watch_service.py

Full-cycle orchestration for the competitor watch pipeline: seed the
watchlist, run every source adapter, enrich matched signals and report.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Any, Protocol

from fastapi import BackgroundTasks

from app.domain.competitor_watch import (
    AnalysisInput,
    AnalysisTotals,
    CycleResult,
    DashboardData,
    ScrapeOptions,
    ScrapeTotals,
)
from app.scraping.base import AdapterContext, ScraperBase
from app.scraping.config import (
    CompetitorWatchSettings,
    Watchlist,
    get_competitor_watch_settings,
    load_watchlist,
    parse_agenda,
    parse_dataset,
)
from app.scraping.helpers import utc_now
from app.scraping.http import SourceHttpClient
from app.scraping.logging_utils import log_event
from app.scraping.matching import CompetitorMatcher
from app.scraping.registry import AdapterRegistry
from app.scraping.storage import SignalStore, SQLAlchemySignalStore
from db.models import Jurisdiction, WatchCycle
from db.models.watch_cycle import WatchCycleStatus, WatchCycleTrigger
from enrichment import EnrichmentService, get_enrichment_service

logger = logging.getLogger(__name__)

RECENT_WINDOW_DAYS = 7
HIGH_PRIORITY_THRESHOLD = 7
TOP_COMPETITORS_IN_REPORT = 5


class CycleTaskExecutor(Protocol):
    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        ...


class FastAPIBackgroundTaskExecutor:
    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        self._background_tasks.add_task(task, *args, **kwargs)


class ThreadTaskExecutor:
    """
    Runs each task on its own daemon thread.
    """

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        thread = threading.Thread(
            target=task,
            args=args,
            kwargs=kwargs,
            name="competitor-watch-cycle",
            daemon=True,
        )
        thread.start()


class CompetitorWatchService:
    """
    Coordinates seeding, scraping, enrichment and reporting.

    Only one full cycle runs per process at a time; a second request while
    one is in flight returns a skipped result instead of queueing.
    """

    def __init__(
        self,
        *,
        store: SignalStore,
        settings: CompetitorWatchSettings,
        watchlist: Watchlist,
        enrichment: EnrichmentService,
        http: SourceHttpClient | None = None,
        registry: AdapterRegistry | None = None,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._store = store
        self._settings = settings
        self._watchlist = watchlist
        self._enrichment = enrichment
        self._http = http or SourceHttpClient(settings=settings)
        self._registry = registry or AdapterRegistry()
        self._clock = clock
        self._sleep = sleep
        self._cycle_lock = threading.Lock()

    @property
    def store(self) -> SignalStore:
        return self._store

    @property
    def is_running(self) -> bool:
        return self._cycle_lock.locked()

    def run_full_cycle(self, days_back: int | None = None) -> CycleResult:
        days_back = days_back if days_back is not None else self._settings.default_days_back
        if not self._cycle_lock.acquire(blocking=False):
            log_event(logger, logging.WARNING, "watch_cycle_skipped", reason="cycle already running")
            return CycleResult(status=WatchCycleStatus.SKIPPED, days_back=days_back)

        started_at = self._clock()
        started_monotonic = time.monotonic()
        try:
            log_event(logger, logging.INFO, "watch_cycle_started", days_back=days_back)
            self.initialize()
            scrape_totals = self.scrape_all(days_back)
            analysis_totals = self.analyze_pending()
            report = self.generate_report(scrape_totals)
            result = CycleResult(
                status=WatchCycleStatus.DONE,
                days_back=days_back,
                scrape=scrape_totals,
                analysis=analysis_totals,
                report=report,
                started_at=started_at,
                finished_at=max(self._clock(), started_at),
            )
            log_event(
                logger,
                logging.INFO,
                "watch_cycle_completed",
                duration_seconds=round(time.monotonic() - started_monotonic, 1),
                **result.to_payload(),
            )
            logger.info(report)
            return result
        finally:
            self._cycle_lock.release()

    def initialize(self) -> tuple[int, int]:
        """
        Create configured jurisdictions and entities that are not stored yet.
        Existing rows are never overwritten.
        """

        created_jurisdictions = 0
        for jurisdiction in self._watchlist.jurisdictions:
            if self._store.ensure_jurisdiction(jurisdiction):
                created_jurisdictions += 1
                log_event(logger, logging.INFO, "jurisdiction_created", key=jurisdiction.key)

        created_entities = 0
        for entity in self._watchlist.entities:
            if self._store.ensure_entity(entity):
                created_entities += 1
                log_event(logger, logging.INFO, "competitor_entity_created", name=entity.name)

        return created_jurisdictions, created_entities

    def scrape_all(self, days_back: int) -> ScrapeTotals:
        context = self._build_context()
        options = ScrapeOptions(days_back=days_back)
        totals = ScrapeTotals()

        jurisdictions = self._store.list_jurisdictions(active=True)
        if self._settings.max_workers > 1 and len(jurisdictions) > 1:
            with ThreadPoolExecutor(
                max_workers=self._settings.max_workers,
                thread_name_prefix="jurisdiction-scrape",
            ) as pool:
                partials = list(
                    pool.map(
                        lambda jurisdiction: self._scrape_jurisdiction(context, jurisdiction, options),
                        jurisdictions,
                    )
                )
        else:
            partials = [
                self._scrape_jurisdiction(context, jurisdiction, options)
                for jurisdiction in jurisdictions
            ]
        for partial_totals in partials:
            totals.merge(partial_totals)

        ciks = self.tracked_ciks()
        if ciks:
            self._run_source(
                totals,
                label="SEC EDGAR",
                build=lambda: self._registry.create_filing_adapter(context=context, ciks=ciks),
                options=options,
            )
        return totals

    def tracked_ciks(self) -> list[str]:
        """
        Configured CIKs followed by active entity CIKs, without duplicates.
        """

        ciks: dict[str, None] = dict.fromkeys(self._watchlist.sec_ciks)
        for entity in self._store.list_entities(active=True):
            if entity.cik:
                ciks.setdefault(entity.cik, None)
        return list(ciks)

    def analyze_pending(self) -> AnalysisTotals:
        totals = AnalysisTotals()
        if not self._enrichment.enabled:
            # Matched signals stay deferred; unmatched ones are cleared in bulk.
            cleared = self._store.mark_unmatched_signals_analyzed()
            totals.processed += cleared
            totals.skipped_no_match += cleared

        signals = self._store.pending_signals(
            max_attempts=self._settings.max_analysis_attempts,
            limit=self._settings.analysis_batch_size,
        )
        for signal in signals:
            totals.processed += 1
            if not signal.competitor_match:
                self._store.mark_signal_analyzed(signal.id)
                totals.skipped_no_match += 1
                continue

            if not self._enrichment.enabled:
                totals.deferred += 1
                continue

            try:
                result = self._enrichment.analyze_signal(signal)
            except Exception as exc:
                log_event(
                    logger,
                    logging.ERROR,
                    "signal_analysis_failed",
                    signal_id=str(signal.id),
                    error=f"{type(exc).__name__}: {exc}",
                )
                result = None

            if result is None:
                self._store.record_analysis_failure(signal.id)
                totals.failed += 1
                continue

            self._store.save_analysis(
                AnalysisInput(
                    signal_id=signal.id,
                    competitor_id=signal.competitor_match,
                    analysis=result.analysis,
                    impact=result.impact,
                    confidence=result.confidence,
                    recommendations=list(result.recommendations),
                    model=self._enrichment.model_name,
                )
            )
            self._store.mark_signal_analyzed(signal.id, confidence=result.confidence)
            totals.analyzed += 1

        log_event(
            logger,
            logging.INFO,
            "signal_analysis_completed",
            processed=totals.processed,
            analyzed=totals.analyzed,
            skipped_no_match=totals.skipped_no_match,
            failed=totals.failed,
            deferred=totals.deferred,
        )
        return totals

    def generate_report(self, totals: ScrapeTotals) -> str:
        since = self._clock() - timedelta(days=RECENT_WINDOW_DAYS)
        recent_count = self._store.count_signals(since=since)
        matched_count = self._store.count_signals(since=since, matched_only=True)
        by_competitor = self._store.signal_counts(since=since, group_by="competitor_match")
        top_competitors = list(by_competitor.items())[:TOP_COMPETITORS_IN_REPORT]
        jurisdictions = self._store.list_jurisdictions(active=True)
        entities = self._store.list_entities(active=True)

        lines = [
            "COMPETITOR WATCH REPORT",
            "=======================",
            "",
            "Scraping Results:",
            f"- Permits: {totals.permits.new} new / {totals.permits.found} total",
            f"- Agendas: {totals.agendas.new} new / {totals.agendas.found} total",
            f"- SEC Filings: {totals.sec.new} new / {totals.sec.found} total",
            f"- TOTAL: {totals.total.new} new signals",
            f"- Failed sources: {totals.failed_sources}",
            "",
            f"Competitor Activity (Last {RECENT_WINDOW_DAYS} Days):",
            f"- Total Signals: {recent_count}",
            f"- With Competitor Match: {matched_count}",
            "",
            "Top Active Competitors:",
        ]
        if top_competitors:
            lines.extend(f"  - {name}: {count} signals" for name, count in top_competitors)
        else:
            lines.append("  (none)")
        lines.extend(
            [
                "",
                f"Jurisdictions Monitored: {len(jurisdictions)}",
                f"Competitors Tracked: {len(entities)}",
            ]
        )
        return "\n".join(lines)

    def get_dashboard_data(self) -> DashboardData:
        since = self._clock() - timedelta(days=RECENT_WINDOW_DAYS)
        high_priority_signals = self._store.list_signals(
            since=since,
            min_priority=HIGH_PRIORITY_THRESHOLD,
            limit=10,
        )
        jurisdictions = self._store.list_jurisdictions(active=True)
        competitors = self._store.list_entities(active=True)

        return DashboardData(
            total_signals=self._store.count_signals(since=since),
            competitor_matches=self._store.count_signals(since=since, matched_only=True),
            high_priority=len(high_priority_signals),
            jurisdictions_active=len(jurisdictions),
            competitors_tracked=len(competitors),
            signals_by_type=self._store.signal_counts(since=since, group_by="type"),
            signals_by_jurisdiction=self._store.signal_counts(since=since, group_by="jurisdiction"),
            signals_by_competitor=self._store.signal_counts(since=since, group_by="competitor_match"),
            high_priority_signals=high_priority_signals,
            recent_analyses=self._store.list_analyses(limit=10),
            competitors=competitors[:10],
            jurisdictions=jurisdictions,
        )

    def trigger_cycle(
        self,
        *,
        executor: CycleTaskExecutor,
        days_back: int | None = None,
        trigger: str = WatchCycleTrigger.API,
    ) -> WatchCycle:
        """
        Record a queued cycle and hand the run to the executor.
        """

        days_back = days_back if days_back is not None else self._settings.default_days_back
        cycle = self._store.create_cycle(trigger=trigger, days_back=days_back)
        try:
            executor.submit(self.run_cycle_job, cycle.id, days_back)
        except Exception:
            self._store.update_cycle(
                cycle.id,
                {
                    "status": WatchCycleStatus.FAILED,
                    "error_message": "Failed to schedule competitor watch cycle.",
                    "finished_at": self._clock(),
                },
            )
            raise
        return cycle

    def run_tracked_cycle(
        self,
        *,
        days_back: int | None = None,
        trigger: str,
    ) -> WatchCycle | None:
        """
        Synchronous variant used by the scheduler and the CLI.
        """

        days_back = days_back if days_back is not None else self._settings.default_days_back
        cycle = self._store.create_cycle(trigger=trigger, days_back=days_back)
        self.run_cycle_job(cycle.id, days_back)
        return self._store.get_cycle(cycle.id)

    def run_cycle_job(self, cycle_id: uuid.UUID, days_back: int) -> None:
        try:
            self._store.update_cycle(
                cycle_id,
                {"status": WatchCycleStatus.RUNNING, "started_at": self._clock()},
            )
            result = self.run_full_cycle(days_back)
            self._store.update_cycle(
                cycle_id,
                {
                    "status": result.status,
                    "finished_at": self._clock(),
                    "result_payload": result.to_payload(),
                    "report": result.report,
                },
            )
        except Exception as exc:
            self._mark_cycle_failed(cycle_id=cycle_id, exc=exc)

    def _mark_cycle_failed(self, *, cycle_id: uuid.UUID, exc: Exception) -> None:
        error_message = f"{type(exc).__name__}: {exc}"
        logger.exception("Competitor watch cycle failed id=%s error=%s", cycle_id, error_message)
        try:
            self._store.update_cycle(
                cycle_id,
                {
                    "status": WatchCycleStatus.FAILED,
                    "finished_at": self._clock(),
                    "error_message": error_message[:2000],
                },
            )
        except Exception:
            logger.exception("Failed to persist failed cycle state id=%s", cycle_id)

    def _build_context(self) -> AdapterContext:
        entities = self._store.list_entities(active=True)
        if not entities and not self._store.list_entities(active=None):
            entities = list(self._watchlist.entities)
        matcher = CompetitorMatcher(entities)
        return AdapterContext(
            store=self._store,
            http=self._http,
            matcher=matcher,
            settings=self._settings,
            clock=self._clock,
            sleep=self._sleep,
        )

    def _scrape_jurisdiction(
        self,
        context: AdapterContext,
        jurisdiction: Jurisdiction,
        options: ScrapeOptions,
    ) -> ScrapeTotals:
        totals = ScrapeTotals()
        for raw_dataset in jurisdiction.datasets or []:
            dataset_type = raw_dataset.get("type") if isinstance(raw_dataset, dict) else None
            if not self._registry.supports_dataset(dataset_type):
                log_event(
                    logger,
                    logging.INFO,
                    "dataset_skipped",
                    jurisdiction=jurisdiction.key,
                    dataset=raw_dataset.get("label") if isinstance(raw_dataset, dict) else None,
                    dataset_type=dataset_type,
                )
                continue
            self._run_source(
                totals,
                label=f"{jurisdiction.key}:{raw_dataset.get('label', 'dataset')}",
                build=lambda raw=raw_dataset: self._registry.create_dataset_adapter(
                    context=context,
                    jurisdiction=jurisdiction.key,
                    dataset=parse_dataset(raw),
                ),
                options=options,
            )
        for raw_agenda in jurisdiction.agendas or []:
            self._run_source(
                totals,
                label=f"{jurisdiction.key}:{raw_agenda.get('label', 'agenda')}",
                build=lambda raw=raw_agenda: self._registry.create_agenda_adapter(
                    context=context,
                    jurisdiction=jurisdiction.key,
                    agenda=parse_agenda(raw),
                ),
                options=options,
            )
        self._store.mark_jurisdiction_scraped(jurisdiction.key, scraped_at=self._clock())
        return totals

    def _run_source(
        self,
        totals: ScrapeTotals,
        *,
        label: str,
        build: Callable[[], ScraperBase],
        options: ScrapeOptions,
    ) -> None:
        try:
            adapter = build()
            result = adapter.scrape(options)
        except Exception as exc:
            totals.failed_sources += 1
            log_event(
                logger,
                logging.ERROR,
                "source_failed",
                source=label,
                error=f"{type(exc).__name__}: {exc}",
            )
            return
        getattr(totals, adapter.category).add(result)


@lru_cache(maxsize=1)
def get_competitor_watch_service() -> CompetitorWatchService:
    from db.session import SessionLocal

    settings = get_competitor_watch_settings()
    return CompetitorWatchService(
        store=SQLAlchemySignalStore(session_factory=SessionLocal),
        settings=settings,
        watchlist=load_watchlist(watchlist_path=settings.watchlist_path),
        enrichment=get_enrichment_service(),
    )
