"""
app/api/routers package marker.
"""

from app.api.routers.competitor_watch import router as competitor_watch_router

__all__ = [
    "competitor_watch_router",
]
