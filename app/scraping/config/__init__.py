"""
Config helpers for competitor watch.
"""

from app.scraping.config.loader import (
    get_competitor_watch_settings,
    load_watchlist,
    parse_agenda,
    parse_dataset,
)
from app.scraping.config.models import (
    AgendaConfig,
    AgendaFormat,
    CompetitorWatchSettings,
    DatasetConfig,
    EntityConfig,
    JurisdictionConfig,
    Watchlist,
)

__all__ = [
    "AgendaConfig",
    "AgendaFormat",
    "CompetitorWatchSettings",
    "DatasetConfig",
    "EntityConfig",
    "JurisdictionConfig",
    "Watchlist",
    "get_competitor_watch_settings",
    "load_watchlist",
    "parse_agenda",
    "parse_dataset",
]
