"""
Repository layer exports.
"""

from db.repositories.scrape_job_repository import ScrapeJobRepository
from db.repositories.signal_repository import SignalRepository
from db.repositories.watch_cycle_repository import WatchCycleRepository
from db.repositories.watchlist_repository import WatchlistRepository

__all__ = [
    "ScrapeJobRepository",
    "SignalRepository",
    "WatchCycleRepository",
    "WatchlistRepository",
]
