"""
db/models/competitor_entity.py

Tracked competitor company or person.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, JSONDocument, TimestampMixin


class CompetitorEntityType:
    COMPANY = "company"
    PERSON = "person"


class CompetitorEntity(Base, TimestampMixin):
    __tablename__ = "competitor_entities"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=CompetitorEntityType.COMPANY,
        comment="company, person",
    )
    keywords: Mapped[list[str]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=list,
    )
    cik: Mapped[str | None] = mapped_column(String(20), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="Declared order; first keyword hit in this order wins",
    )
