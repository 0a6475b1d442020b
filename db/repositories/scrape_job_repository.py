"""
Repository for scrape job persistence and lookup.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from db.models.scrape_job import ScrapeJob, ScrapeJobStatus


class ScrapeJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_job(
        self,
        *,
        source: str,
        query: dict[str, Any] | None,
        started_at: datetime,
    ) -> ScrapeJob:
        job = ScrapeJob(
            source=source,
            query=query,
            status=ScrapeJobStatus.RUNNING,
            started_at=started_at,
        )
        self._session.add(job)
        self._session.flush()
        self._session.refresh(job)
        return job

    def get_job(self, job_id: uuid.UUID) -> ScrapeJob | None:
        return self._session.get(ScrapeJob, job_id)

    def list_jobs(self, *, limit: int = 50, status: str | None = None) -> list[ScrapeJob]:
        stmt: Select[tuple[ScrapeJob]] = select(ScrapeJob)
        if status:
            stmt = stmt.where(ScrapeJob.status == status)

        stmt = stmt.order_by(ScrapeJob.started_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def finish_job(
        self,
        job: ScrapeJob,
        *,
        status: str,
        finished_at: datetime,
        execution_time_ms: int,
        records_found: int,
        records_new: int,
        error_message: str | None,
    ) -> ScrapeJob:
        job.status = status
        job.finished_at = finished_at
        job.execution_time_ms = execution_time_ms
        job.records_found = records_found
        job.records_new = records_new
        job.error_message = error_message
        self._session.flush()
        return job
