"""
Storage layer exports.
"""

from app.scraping.storage.base import SignalStore
from app.scraping.storage.sqlalchemy_storage import SQLAlchemySignalStore

__all__ = ["SignalStore", "SQLAlchemySignalStore"]
