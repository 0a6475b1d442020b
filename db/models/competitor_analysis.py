"""
db/models/competitor_analysis.py

Enrichment output for one competitor-matched signal.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONDocument


class ImpactLevel:
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class CompetitorAnalysis(Base):
    __tablename__ = "competitor_analyses"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    signal_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("competitor_signals.id", ondelete="CASCADE"),
        nullable=False,
    )
    competitor_id: Mapped[str] = mapped_column(String(255), nullable=False)
    analysis: Mapped[str] = mapped_column(Text, nullable=False)
    impact: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="low, medium, high, critical",
    )
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    recommendations: Mapped[list[str]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=list,
    )
    model: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_competitor_analyses_signal_id", "signal_id"),
        Index("ix_competitor_analyses_competitor_id", "competitor_id"),
    )
