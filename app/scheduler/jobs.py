"""
app/scheduler/jobs.py

APScheduler-based periodic runner for the competitor watch cycle.

Schedule
--------
  competitor_watch_cycle: every ``COMPETITOR_WATCH_INTERVAL_MINUTES``
  (default 360). A run that finds another cycle in flight records a
  skipped cycle instead of queueing.

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py
when ``COMPETITOR_WATCH_SCHEDULER_ENABLED`` is true.
"""

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from app.scraping.config import CompetitorWatchSettings, get_competitor_watch_settings
from app.services.competitor_watch_service import get_competitor_watch_service
from db.models.watch_cycle import WatchCycleTrigger

logger = logging.getLogger(__name__)

JOB_ID = "competitor_watch_cycle"


def run_competitor_watch_cycle() -> None:
    """
    Run one tracked cycle with the default look-back window.
    Failures are recorded on the cycle row and never propagate into the scheduler.
    """
    logger.info("Scheduler: competitor_watch_cycle starting")
    try:
        cycle = get_competitor_watch_service().run_tracked_cycle(trigger=WatchCycleTrigger.SCHEDULER)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduler: competitor_watch_cycle could not start: %s", exc)
        return

    logger.info(
        "Scheduler: competitor_watch_cycle complete id=%s status=%s",
        cycle.id if cycle is not None else None,
        cycle.status if cycle is not None else None,
    )


def build_scheduler(settings: CompetitorWatchSettings | None = None) -> BackgroundScheduler:
    """
    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    settings = settings or get_competitor_watch_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    scheduler.add_job(
        run_competitor_watch_cycle,
        trigger="interval",
        minutes=settings.schedule_interval_minutes,
        id=JOB_ID,
        name="Competitor watch full cycle",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=3600,
    )

    return scheduler
