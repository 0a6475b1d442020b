"""
app/services package marker.
"""

from app.services.competitor_watch_service import (
    CompetitorWatchService,
    FastAPIBackgroundTaskExecutor,
    ThreadTaskExecutor,
    get_competitor_watch_service,
)

__all__ = [
    "CompetitorWatchService",
    "FastAPIBackgroundTaskExecutor",
    "ThreadTaskExecutor",
    "get_competitor_watch_service",
]
