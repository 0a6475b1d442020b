from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    scheduler_enabled: bool
    cycle_running: bool


def _validate_env() -> None:
    """
    Validate required environment variables at startup.

    Runs before any service or database connection is initialised.
    Raises RuntimeError listing every missing or invalid variable so the
    operator can fix all problems in one restart cycle.

    Rules:
    - A database URL must be configured; SQLite is not permitted.
    - ENRICHMENT_ADAPTER, when set, must be openai, mock or disabled.
    """

    from db.config import load_env_files

    load_env_files()

    errors: list[str] = []

    database_url = os.getenv("DATABASE_URL", "").strip()
    cloud_database_url = os.getenv("CLOUD_DATABASE_URL", "").strip()
    local_database_url = os.getenv("LOCAL_DATABASE_URL", "").strip()
    if not (database_url or cloud_database_url or local_database_url):
        errors.append(
            "No database URL configured. Set DATABASE_URL, CLOUD_DATABASE_URL "
            "or LOCAL_DATABASE_URL."
        )
    elif database_url.startswith("sqlite"):
        errors.append("DATABASE_URL must point at PostgreSQL; SQLite is not permitted.")

    adapter = os.getenv("ENRICHMENT_ADAPTER", "openai").strip().lower()
    if adapter not in {"openai", "mock", "disabled"}:
        errors.append(
            f"ENRICHMENT_ADAPTER='{adapter}' is not valid. "
            "Allowed values: ['disabled', 'mock', 'openai']."
        )

    if errors:
        raise RuntimeError(
            "Startup validation failed. Missing or invalid environment variables:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )


def _configure_logging() -> None:
    """
    Configure root logging once for the API process.
    """

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def _check_db() -> None:
    """Open a session and run SELECT 1. Raises RuntimeError if the DB is unreachable."""
    from sqlalchemy import text

    from db.session import SessionLocal

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
        finally:
            db.close()
    except Exception as exc:
        raise RuntimeError("Database unavailable.") from exc


def _check_schema() -> None:
    """
    Every table registered on Base.metadata must exist in the database.
    Aborts startup when any are missing. Does NOT auto-migrate.
    """
    from sqlalchemy import inspect as sa_inspect

    import db.models  # noqa: F401  registers all ORM models on Base.metadata
    from db.base import Base
    from db.session import get_engine

    inspector = sa_inspect(get_engine())
    actual: set[str] = set(inspector.get_table_names())
    expected: set[str] = set(Base.metadata.tables.keys())
    missing = expected - actual

    if missing:
        logging.getLogger(__name__).critical(
            "Schema mismatch: %d table(s) absent from the database: %s. "
            "Run 'alembic upgrade head' and restart.",
            len(missing),
            ", ".join(sorted(missing)),
        )
        raise RuntimeError(
            f"Schema mismatch: {len(missing)} table(s) missing from the database "
            f"({', '.join(sorted(missing))}). Run migrations and restart."
        )


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Validate DB and schema, seed the watchlist, and run the scheduler when enabled."""
    log = logging.getLogger(__name__)
    _check_db()
    log.info("Database connectivity confirmed")
    _check_schema()
    log.info("Database schema validated")

    from app.scraping.config import get_competitor_watch_settings
    from app.services.competitor_watch_service import get_competitor_watch_service

    created_jurisdictions, created_entities = get_competitor_watch_service().initialize()
    log.info(
        "Watchlist seeded jurisdictions_created=%d entities_created=%d",
        created_jurisdictions,
        created_entities,
    )

    settings = get_competitor_watch_settings()
    if not settings.scheduler_enabled:
        log.info("Scheduler disabled")
        yield
        return

    from app.scheduler.jobs import build_scheduler

    scheduler = build_scheduler(settings)
    scheduler.start()
    log.info("Scheduler started with %d jobs", len(scheduler.get_jobs()))
    try:
        yield
    finally:
        scheduler.shutdown(wait=True)
        log.info("Scheduler shut down")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.
    """

    _validate_env()
    _configure_logging()

    application = FastAPI(
        title="Competitor Watch API",
        version="1.0.0",
        lifespan=_lifespan,
    )

    from app.api.routers import competitor_watch_router

    application.include_router(competitor_watch_router)

    @application.get("/health", response_model=HealthResponse)
    def healthcheck() -> HealthResponse:
        from app.scraping.config import get_competitor_watch_settings
        from app.services.competitor_watch_service import get_competitor_watch_service

        return HealthResponse(
            status="ok",
            scheduler_enabled=get_competitor_watch_settings().scheduler_enabled,
            cycle_running=get_competitor_watch_service().is_running,
        )

    return application


app = create_app()
