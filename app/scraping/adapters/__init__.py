"""
Source adapter implementations.
"""

from app.scraping.adapters.agendas import AGENDA_STRATEGIES, AgendaAdapter
from app.scraping.adapters.filings import FilingFeedAdapter
from app.scraping.adapters.gis import GISPermitAdapter

__all__ = [
    "AGENDA_STRATEGIES",
    "AgendaAdapter",
    "FilingFeedAdapter",
    "GISPermitAdapter",
]
