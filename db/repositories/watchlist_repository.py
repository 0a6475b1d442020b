"""
Repository for monitored jurisdictions and tracked competitor entities.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from db.models.competitor_entity import CompetitorEntity
from db.models.jurisdiction import Jurisdiction


class WatchlistRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_jurisdiction(self, key: str) -> Jurisdiction | None:
        return self._session.scalar(select(Jurisdiction).where(Jurisdiction.key == key))

    def create_jurisdiction(self, **fields: Any) -> Jurisdiction:
        jurisdiction = Jurisdiction(**fields)
        self._session.add(jurisdiction)
        self._session.flush()
        return jurisdiction

    def list_jurisdictions(self, *, active: bool | None = None) -> list[Jurisdiction]:
        stmt: Select[tuple[Jurisdiction]] = select(Jurisdiction)
        if active is not None:
            stmt = stmt.where(Jurisdiction.active.is_(active))
        return list(self._session.scalars(stmt.order_by(Jurisdiction.key)).all())

    def get_entity(self, entity_id: uuid.UUID) -> CompetitorEntity | None:
        return self._session.get(CompetitorEntity, entity_id)

    def get_entity_by_name(self, name: str) -> CompetitorEntity | None:
        return self._session.scalar(select(CompetitorEntity).where(CompetitorEntity.name == name))

    def create_entity(self, **fields: Any) -> CompetitorEntity:
        next_position = self._session.scalar(
            select(func.coalesce(func.max(CompetitorEntity.position), -1))
        )
        entity = CompetitorEntity(position=int(next_position) + 1, **fields)
        self._session.add(entity)
        self._session.flush()
        return entity

    def list_entities(self, *, active: bool | None = None) -> list[CompetitorEntity]:
        stmt: Select[tuple[CompetitorEntity]] = select(CompetitorEntity)
        if active is not None:
            stmt = stmt.where(CompetitorEntity.active.is_(active))
        stmt = stmt.order_by(CompetitorEntity.position, CompetitorEntity.name)
        return list(self._session.scalars(stmt).all())
