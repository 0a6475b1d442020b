"""
db/models/watch_cycle.py

One full competitor watch cycle, queryable by id.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONDocument, TimestampMixin


class WatchCycleStatus:
    QUEUED = "queued"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"


class WatchCycleTrigger:
    API = "api"
    SCHEDULER = "scheduler"
    CLI = "cli"


class WatchCycle(Base, TimestampMixin):
    __tablename__ = "watch_cycles"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=WatchCycleStatus.QUEUED,
    )
    trigger: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="api, scheduler, cli",
    )
    days_back: Mapped[int] = mapped_column(Integer, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    finished_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    result_payload: Mapped[dict[str, Any] | None] = mapped_column(
        JSONDocument,
        nullable=True,
        comment="Aggregated scrape and analysis counts",
    )
    report: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_watch_cycles_status", "status"),
        Index("ix_watch_cycles_created_at", "created_at"),
    )
