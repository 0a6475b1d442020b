"""
db/session.py

Engine and session factory for the competitor watch store, created on
first use so importing the models never needs a database.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import resolve_database_url


@dataclass(frozen=True)
class EngineSettings:
    url: str
    echo: bool
    pool_size: int
    max_overflow: int
    pool_recycle: int


def _env_flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except ValueError:
        return default


def get_engine_settings() -> EngineSettings:
    url = resolve_database_url()
    if not url.startswith("postgresql"):
        raise RuntimeError("Only PostgreSQL URLs are supported.")
    return EngineSettings(
        url=url,
        echo=_env_flag("SQL_ECHO"),
        pool_size=_env_int("DB_POOL_SIZE", 5),
        max_overflow=_env_int("DB_MAX_OVERFLOW", 10),
        pool_recycle=_env_int("DB_POOL_RECYCLE", 1800),
    )


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """Shared engine; adapter threads each check out their own connection."""
    settings = get_engine_settings()
    return create_engine(
        settings.url,
        echo=settings.echo,
        pool_pre_ping=True,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_recycle=settings.pool_recycle,
    )


@lru_cache(maxsize=1)
def _session_factory() -> sessionmaker[Session]:
    # Store methods return rows detached; their attributes must survive commit.
    return sessionmaker(bind=get_engine(), autoflush=False, expire_on_commit=False)


def SessionLocal() -> Session:
    """Lazy drop-in for a sessionmaker() call."""
    return _session_factory()()
