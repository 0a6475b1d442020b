"""
db/models/jurisdiction.py

Monitored geographic/administrative area and its source configuration.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONDocument, TimestampMixin


class Jurisdiction(Base, TimestampMixin):
    __tablename__ = "geo_jurisdictions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    state: Mapped[str] = mapped_column(String(2), nullable=False)
    bbox: Mapped[list[float] | None] = mapped_column(
        JSONDocument,
        nullable=True,
        comment="[minLon, minLat, maxLon, maxLat]",
    )
    datasets: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=list,
    )
    agendas: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=list,
    )
    env_notices: Mapped[list[str]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=list,
    )
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    scrape_frequency: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=360,
        comment="Minutes between scrapes",
    )
    last_scraped: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
