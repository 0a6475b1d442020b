"""
Repository for competitor signals and their analyses.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Select, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from db.models.competitor_analysis import CompetitorAnalysis
from db.models.competitor_signal import CompetitorSignal

_DEDUPE_COLUMNS = ["source", "jurisdiction", "source_id"]
_GROUPABLE_COLUMNS = {
    "type": CompetitorSignal.type,
    "jurisdiction": CompetitorSignal.jurisdiction,
    "competitor_match": CompetitorSignal.competitor_match,
}


class SignalRepository:
    """
    Signal persistence with storage-level deduplication.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def insert_if_absent(self, payload: dict[str, Any]) -> uuid.UUID | None:
        """
        INSERT ... ON CONFLICT DO NOTHING on the dedupe key.

        Returns the new row id, or None when the record already existed.
        """

        insert = self._dialect_insert()
        stmt = (
            insert(CompetitorSignal)
            .values(**payload)
            .on_conflict_do_nothing(index_elements=_DEDUPE_COLUMNS)
            .returning(CompetitorSignal.id)
        )
        return self._session.execute(stmt).scalar_one_or_none()

    def get(self, signal_id: uuid.UUID) -> CompetitorSignal | None:
        return self._session.get(CompetitorSignal, signal_id)

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
        stmt: Select[tuple[CompetitorSignal]] = select(CompetitorSignal)
        if jurisdiction:
            stmt = stmt.where(CompetitorSignal.jurisdiction == jurisdiction)
        if signal_type:
            stmt = stmt.where(CompetitorSignal.type == signal_type)
        if competitor:
            stmt = stmt.where(CompetitorSignal.competitor_match == competitor)
        if since is not None:
            stmt = stmt.where(CompetitorSignal.when_iso >= since)
        if min_priority is not None:
            stmt = stmt.where(CompetitorSignal.priority >= min_priority)

        if min_priority is not None:
            stmt = stmt.order_by(CompetitorSignal.priority.desc(), CompetitorSignal.when_iso.desc())
        else:
            stmt = stmt.order_by(CompetitorSignal.when_iso.desc())
        return list(self._session.scalars(stmt.limit(max(1, limit))).all())

    def list_pending(self, *, max_attempts: int, limit: int) -> list[CompetitorSignal]:
        stmt = (
            select(CompetitorSignal)
            .where(CompetitorSignal.analyzed.is_(False))
            .where(CompetitorSignal.analysis_attempts < max_attempts)
            .order_by(CompetitorSignal.priority.desc(), CompetitorSignal.when_iso.desc())
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    def mark_analyzed(self, signal_id: uuid.UUID, *, confidence: float | None) -> None:
        values: dict[str, Any] = {"analyzed": True}
        if confidence is not None:
            values["confidence"] = confidence
        self._session.execute(
            update(CompetitorSignal)
            .where(CompetitorSignal.id == signal_id)
            .values(**values)
        )

    def mark_unmatched_analyzed(self) -> int:
        result = self._session.execute(
            update(CompetitorSignal)
            .where(CompetitorSignal.analyzed.is_(False))
            .where(CompetitorSignal.competitor_match.is_(None))
            .values(analyzed=True)
        )
        return result.rowcount or 0

    def increment_attempts(self, signal_id: uuid.UUID) -> None:
        self._session.execute(
            update(CompetitorSignal)
            .where(CompetitorSignal.id == signal_id)
            .values(analysis_attempts=CompetitorSignal.analysis_attempts + 1)
        )

    def count(self, *, since: datetime | None = None, matched_only: bool = False) -> int:
        stmt = select(func.count(CompetitorSignal.id))
        if since is not None:
            stmt = stmt.where(CompetitorSignal.when_iso >= since)
        if matched_only:
            stmt = stmt.where(CompetitorSignal.competitor_match.is_not(None))
        return int(self._session.scalar(stmt) or 0)

    def count_by(self, *, group_by: str, since: datetime) -> dict[str, int]:
        column = _GROUPABLE_COLUMNS.get(group_by)
        if column is None:
            raise ValueError(f"Unsupported signal grouping '{group_by}'.")

        stmt = (
            select(column, func.count(CompetitorSignal.id))
            .where(CompetitorSignal.when_iso >= since)
            .where(column.is_not(None))
            .group_by(column)
            .order_by(func.count(CompetitorSignal.id).desc(), column)
        )
        return {str(key): int(total) for key, total in self._session.execute(stmt).all()}

    def add_analysis(self, analysis: CompetitorAnalysis) -> CompetitorAnalysis:
        self._session.add(analysis)
        self._session.flush()
        self._session.refresh(analysis)
        return analysis

    def list_analyses(
        self,
        *,
        competitor_id: str | None = None,
        limit: int = 20,
    ) -> list[CompetitorAnalysis]:
        stmt: Select[tuple[CompetitorAnalysis]] = select(CompetitorAnalysis)
        if competitor_id:
            stmt = stmt.where(CompetitorAnalysis.competitor_id == competitor_id)
        stmt = stmt.order_by(CompetitorAnalysis.created_at.desc()).limit(max(1, limit))
        return list(self._session.scalars(stmt).all())

    def _dialect_insert(self):
        dialect = self._session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert
        if dialect == "sqlite":
            return sqlite.insert
        raise RuntimeError(f"Signal upsert is not supported on dialect '{dialect}'.")
