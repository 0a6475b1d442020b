"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.competitor_analysis import CompetitorAnalysis
from db.models.competitor_entity import CompetitorEntity
from db.models.competitor_signal import CompetitorSignal
from db.models.jurisdiction import Jurisdiction
from db.models.scrape_job import ScrapeJob
from db.models.watch_cycle import WatchCycle

__all__ = [
    "Jurisdiction",
    "CompetitorEntity",
    "CompetitorSignal",
    "CompetitorAnalysis",
    "ScrapeJob",
    "WatchCycle",
]
