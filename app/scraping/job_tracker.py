"""
Lifecycle wrapper around one ScrapeJob record.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

from app.scraping.errors import JobStateError
from app.scraping.helpers import utc_now
from app.scraping.logging_utils import log_event
from app.scraping.storage.base import SignalStore
from db.models.scrape_job import ScrapeJob, ScrapeJobStatus

logger = logging.getLogger(__name__)


class JobTracker:
    """
    Opens a job in `running` state and moves it to exactly one terminal state.

    Execution time comes from a monotonic clock started in `start`, and the
    recorded finish time never precedes the recorded start time.
    """

    def __init__(
        self,
        store: SignalStore,
        *,
        clock: Callable[[], datetime] = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._clock = clock
        self._monotonic = monotonic
        self._job: ScrapeJob | None = None
        self._started_at: datetime | None = None
        self._started_monotonic = 0.0
        self._finished = False

    @property
    def job(self) -> ScrapeJob | None:
        return self._job

    def start(self, source: str, query: dict[str, Any] | None = None) -> ScrapeJob:
        if self._job is not None:
            raise JobStateError(f"Job for source '{source}' was already started.")

        self._started_at = self._clock()
        self._started_monotonic = self._monotonic()
        self._job = self._store.create_job(
            source=source,
            query=query or {},
            started_at=self._started_at,
        )
        return self._job

    def complete(self, found: int, new: int) -> ScrapeJob:
        return self._finish(
            status=ScrapeJobStatus.DONE,
            records_found=found,
            records_new=new,
        )

    def fail(self, message: str, *, found: int = 0, new: int = 0) -> ScrapeJob:
        return self._finish(
            status=ScrapeJobStatus.FAILED,
            records_found=found,
            records_new=new,
            error_message=message,
        )

    def _finish(self, *, status: str, **fields: Any) -> ScrapeJob:
        if self._job is None or self._started_at is None:
            raise JobStateError("Cannot finish a job that was never started.")
        if self._finished:
            raise JobStateError(f"Scrape job {self._job.id} already reached a terminal state.")

        self._finished = True
        execution_time_ms = int((self._monotonic() - self._started_monotonic) * 1000)
        finished_at = max(self._clock(), self._started_at)
        self._job = self._store.finish_job(
            self._job.id,
            status=status,
            finished_at=finished_at,
            execution_time_ms=max(0, execution_time_ms),
            **fields,
        )
        log_event(
            logger,
            logging.INFO if status == ScrapeJobStatus.DONE else logging.WARNING,
            "scrape_job_finished",
            job_id=str(self._job.id),
            source=self._job.source,
            status=status,
            execution_time_ms=execution_time_ms,
            records_found=fields.get("records_found"),
            records_new=fields.get("records_new"),
            error=fields.get("error_message"),
        )
        return self._job
