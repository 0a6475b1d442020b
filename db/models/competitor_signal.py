"""
db/models/competitor_signal.py

Normalized observation extracted from one external source.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONDocument


class SignalType:
    PERMIT = "permit"
    SEC_FILING = "sec_filing"
    AGENDA = "agenda"


class CompetitorSignal(Base):
    __tablename__ = "competitor_signals"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="permit, sec_filing, agenda",
    )
    source_id: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    when_iso: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    link: Mapped[str | None] = mapped_column(Text, nullable=True)
    raw_data: Mapped[dict[str, Any] | None] = mapped_column(JSONDocument, nullable=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=5)
    competitor_match: Mapped[str | None] = mapped_column(String(255), nullable=True)
    confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    analyzed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    analysis_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    source: Mapped[str] = mapped_column(String(100), nullable=False)
    jurisdiction: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint(
            "source",
            "jurisdiction",
            "source_id",
            name="uq_competitor_signals_source_jurisdiction_source_id",
        ),
        Index("ix_competitor_signals_when_iso", "when_iso"),
        Index("ix_competitor_signals_analyzed", "analyzed"),
        Index("ix_competitor_signals_competitor_match", "competitor_match"),
    )
