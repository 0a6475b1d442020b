"""
Repository for full-cycle run records.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy.orm import Session

from db.models.watch_cycle import WatchCycle, WatchCycleStatus


class WatchCycleRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_cycle(self, *, trigger: str, days_back: int) -> WatchCycle:
        cycle = WatchCycle(
            trigger=trigger,
            days_back=days_back,
            status=WatchCycleStatus.QUEUED,
        )
        self._session.add(cycle)
        self._session.flush()
        self._session.refresh(cycle)
        return cycle

    def get_cycle(self, cycle_id: uuid.UUID) -> WatchCycle | None:
        return self._session.get(WatchCycle, cycle_id)

    def update_cycle(self, cycle_id: uuid.UUID, changes: dict[str, Any]) -> WatchCycle | None:
        cycle = self.get_cycle(cycle_id)
        if cycle is None:
            return None
        for field_name, value in changes.items():
            setattr(cycle, field_name, value)
        self._session.flush()
        return cycle
