"""
Source adapter contract and the shared scrape run template.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, TypeVar

from app.domain.competitor_watch import ScrapeOptions, ScrapeResult, ScrapeTally, SignalInput
from app.scraping.config.models import CompetitorWatchSettings
from app.scraping.helpers import compute_cutoff, utc_now
from app.scraping.http import SourceHttpClient
from app.scraping.job_tracker import JobTracker
from app.scraping.logging_utils import log_event
from app.scraping.matching import CompetitorMatcher
from app.scraping.storage.base import SignalStore

logger = logging.getLogger(__name__)

MATCH_CONFIDENCE = 0.8

RecordT = TypeVar("RecordT")


@dataclass(frozen=True)
class AdapterContext:
    """
    Collaborators shared by every adapter in one cycle.
    """

    store: SignalStore
    http: SourceHttpClient
    matcher: CompetitorMatcher
    settings: CompetitorWatchSettings
    clock: Callable[[], datetime] = utc_now
    sleep: Callable[[float], None] = time.sleep


@dataclass(frozen=True)
class RecordCandidate:
    """
    One extracted source record. signal is None when the record is in range
    but fails the significance test.
    """

    when_iso: datetime
    signal: SignalInput | None


class SourceAdapter(ABC):
    """
    Narrow interface every source adapter implements.
    """

    category: str = ""

    @abstractmethod
    def scrape(self, options: ScrapeOptions) -> ScrapeResult:
        """
        Fetch, filter and persist signals for one source.
        """


class ScraperBase(SourceAdapter):
    """
    Wraps `collect` in a tracked job with a stable cutoff.

    Subclasses fetch raw records and feed them through `ingest`, which
    isolates record-level failures.
    """

    def __init__(self, *, context: AdapterContext, source: str, jurisdiction: str) -> None:
        self.context = context
        self.source = source
        self.jurisdiction = jurisdiction

    def scrape(self, options: ScrapeOptions) -> ScrapeResult:
        tracker = JobTracker(self.context.store, clock=self.context.clock)
        tracker.start(self.source, self.job_query(options))
        cutoff = compute_cutoff(options.days_back, now=self.context.clock())
        tally = ScrapeTally()

        try:
            self.collect(cutoff=cutoff, tally=tally)
        except Exception as exc:
            tracker.fail(str(exc) or type(exc).__name__, found=tally.found, new=tally.new)
            log_event(
                logger,
                logging.ERROR,
                "source_scrape_failed",
                source=self.source,
                jurisdiction=self.jurisdiction,
                error=str(exc),
            )
            raise

        tracker.complete(found=tally.found, new=tally.new)
        log_event(
            logger,
            logging.INFO,
            "source_scrape_completed",
            source=self.source,
            jurisdiction=self.jurisdiction,
            records_found=tally.found,
            records_new=tally.new,
        )
        return tally.to_result()

    def job_query(self, options: ScrapeOptions) -> dict[str, Any]:
        return {"jurisdiction": self.jurisdiction, "days_back": options.days_back}

    @abstractmethod
    def collect(self, *, cutoff: datetime, tally: ScrapeTally) -> None:
        """
        Fetch source records and pass them to `ingest`. Raising fails the job.
        """

    def ingest(
        self,
        records: Iterable[RecordT],
        *,
        extract: Callable[[RecordT], RecordCandidate],
        cutoff: datetime,
        tally: ScrapeTally,
    ) -> None:
        for index, record in enumerate(records):
            try:
                candidate = extract(record)
            except Exception as exc:
                log_event(
                    logger,
                    logging.WARNING,
                    "source_record_skipped",
                    source=self.source,
                    jurisdiction=self.jurisdiction,
                    index=index,
                    error=str(exc),
                )
                continue

            if candidate.when_iso < cutoff:
                continue
            tally.found += 1
            if candidate.signal is None:
                continue
            if self.save_signal(candidate.signal):
                tally.new += 1

    def save_signal(self, signal: SignalInput) -> bool:
        """
        Attach competitor match and persist. True when newly inserted.
        """

        competitor = self.context.matcher.match_signal(
            title=signal.title,
            address=signal.address,
            raw_data=signal.raw_data,
        )
        if competitor:
            signal = replace(signal, competitor_match=competitor, confidence=MATCH_CONFIDENCE)
        return self.context.store.insert_signal(signal)

    def build_signal(self, **fields: Any) -> SignalInput:
        return SignalInput(source=self.source, jurisdiction=self.jurisdiction, **fields)
