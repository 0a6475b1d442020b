"""
Shared fixtures: an in-memory SQLite store built from the production
models, a stub requests session, and a fixed clock.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Any

import pytest
import requests
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401  registers all ORM models on Base.metadata
from app.scraping.base import AdapterContext
from app.scraping.config.models import CompetitorWatchSettings, EntityConfig
from app.scraping.http import SourceHttpClient
from app.scraping.matching import CompetitorMatcher
from app.scraping.rate_limiter import DomainRateLimiter
from app.scraping.storage import SQLAlchemySignalStore
from db.base import Base

FIXED_NOW = datetime(2024, 3, 24, 12, 0, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, *, status_code: int = 200, json_data: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._json_data = json_data
        self.text = text

    def json(self) -> Any:
        if self._json_data is None:
            raise ValueError("No JSON body")
        return self._json_data


class FakeSession:
    """
    Stands in for requests.Session. Routes are matched by URL prefix;
    a route value may be a FakeResponse, an exception, a list of either
    consumed one per call, or a callable taking (url, params).
    """

    def __init__(self, routes: dict[str, Any] | None = None) -> None:
        self.routes: dict[str, Any] = dict(routes or {})
        self.calls: list[dict[str, Any]] = []

    def get(self, url: str, *, params=None, headers=None, timeout=None, allow_redirects=True):
        self.calls.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        for prefix, outcome in self.routes.items():
            if url.startswith(prefix):
                if isinstance(outcome, list):
                    outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
                elif callable(outcome):
                    outcome = outcome(url, params or {})
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
        raise requests.ConnectionError(f"no route for {url}")


def make_settings(**overrides: Any) -> CompetitorWatchSettings:
    values: dict[str, Any] = {
        "watchlist_path": "app/scraping/config/watchlist.json",
        "default_days_back": 30,
        "user_agent": "CompetitorWatchTests/1.0",
        "timeout_seconds": 5.0,
        "max_retries": 2,
        "backoff_initial_seconds": 1.0,
        "backoff_multiplier": 2.0,
        "rate_limit_per_second": 100.0,
        "filing_delay_seconds": 0.0,
        "max_workers": 1,
        "max_analysis_attempts": 3,
        "analysis_batch_size": 100,
        "schedule_interval_minutes": 360,
        "scheduler_enabled": False,
    }
    values.update(overrides)
    return CompetitorWatchSettings(**values)


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest.fixture()
def session_factory() -> Iterator[sessionmaker[Session]]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture()
def store(session_factory: sessionmaker[Session]) -> SQLAlchemySignalStore:
    return SQLAlchemySignalStore(session_factory=session_factory)


@pytest.fixture()
def settings() -> CompetitorWatchSettings:
    return make_settings()


@pytest.fixture()
def sleeps() -> list[float]:
    return []


@pytest.fixture()
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture()
def http_client(
    settings: CompetitorWatchSettings,
    fake_session: FakeSession,
    sleeps: list[float],
) -> SourceHttpClient:
    return SourceHttpClient(
        settings=settings,
        session=fake_session,
        rate_limiter=DomainRateLimiter(rate_limit_per_second=1000.0, sleep=lambda _seconds: None),
        sleep=sleeps.append,
    )


@pytest.fixture()
def entities() -> list[EntityConfig]:
    return [
        EntityConfig(name="Camden Property Trust", keywords=("camden",), cik="0000906345"),
        EntityConfig(name="Greystar", keywords=("greystar",)),
        EntityConfig(name="Retired Builder", keywords=("retired",), active=False),
    ]


@pytest.fixture()
def context(
    store: SQLAlchemySignalStore,
    http_client: SourceHttpClient,
    settings: CompetitorWatchSettings,
    entities: list[EntityConfig],
    sleeps: list[float],
) -> AdapterContext:
    return AdapterContext(
        store=store,
        http=http_client,
        matcher=CompetitorMatcher(entities),
        settings=settings,
        clock=fixed_clock,
        sleep=sleeps.append,
    )
