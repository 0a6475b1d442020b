"""
Keyword-based competitor detection.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class MatchableEntity:
    name: str
    keywords: tuple[str, ...]
    active: bool = True


class CompetitorMatcher:
    """
    Maps free text to the first tracked entity, in declared order, whose
    keyword list has a case-insensitive substring hit.
    """

    def __init__(self, entities: Iterable[Any]) -> None:
        compiled: list[tuple[str, tuple[str, ...]]] = []
        for entity in entities:
            if not getattr(entity, "active", True):
                continue
            keywords = tuple(
                keyword.strip().lower()
                for keyword in getattr(entity, "keywords", None) or ()
                if isinstance(keyword, str) and keyword.strip()
            )
            if keywords:
                compiled.append((entity.name, keywords))
        self._entities: Sequence[tuple[str, tuple[str, ...]]] = tuple(compiled)

    @property
    def entity_names(self) -> list[str]:
        return [name for name, _ in self._entities]

    def match(self, text: str | None) -> str | None:
        if not text:
            return None
        haystack = text.lower()
        for name, keywords in self._entities:
            if any(keyword in haystack for keyword in keywords):
                return name
        return None

    def match_signal(
        self,
        *,
        title: str | None,
        address: str | None,
        raw_data: Mapping[str, Any] | None,
    ) -> str | None:
        serialized = json.dumps(raw_data, default=str) if raw_data else ""
        return self.match(f"{title or ''} {address or ''} {serialized}")
