"""
Exception taxonomy for the competitor watch pipeline.
"""

from __future__ import annotations


class CompetitorWatchError(Exception):
    """Base error for competitor watch failures."""


class SourceFetchError(CompetitorWatchError):
    """
    An external source could not be fetched or returned an unusable payload.
    """

    def __init__(self, message: str, *, url: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ConfigurationError(CompetitorWatchError):
    """Invalid or incomplete source configuration."""


class JobStateError(CompetitorWatchError):
    """Invalid scrape job lifecycle transition."""
