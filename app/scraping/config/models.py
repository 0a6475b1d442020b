"""
Competitor watch configuration models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class AgendaFormat(str, Enum):
    """
    Wire formats published by municipal agenda systems.
    """

    CIVICCLERK = "civicclerk"
    CIVICPLUS = "civicplus"
    HTML = "html"
    RSS = "rss"


@dataclass(frozen=True)
class DatasetConfig:
    """
    One GIS permit dataset for a jurisdiction.
    """

    type: str
    label: str
    url: str
    date_field: str | None = None
    address_field: str | None = None
    parcel_field: str | None = None
    title_template: str | None = None
    link_template: str | None = None


@dataclass(frozen=True)
class AgendaConfig:
    """
    One agenda publishing endpoint. format is validated by the agenda adapter.
    """

    label: str
    url: str
    format: str


@dataclass(frozen=True)
class JurisdictionConfig:
    key: str
    label: str
    state: str
    bbox: tuple[float, float, float, float] | None = None
    datasets: tuple[DatasetConfig, ...] = ()
    agendas: tuple[AgendaConfig, ...] = ()
    env_notices: tuple[str, ...] = ()
    active: bool = True
    scrape_frequency: int = 360


@dataclass(frozen=True)
class EntityConfig:
    name: str
    type: str = "company"
    keywords: tuple[str, ...] = ()
    cik: str | None = None
    active: bool = True


@dataclass(frozen=True)
class Watchlist:
    """
    Static seed data: jurisdictions, competitor entities and tracked filer CIKs.
    """

    jurisdictions: tuple[JurisdictionConfig, ...] = ()
    entities: tuple[EntityConfig, ...] = ()
    sec_ciks: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CompetitorWatchSettings:
    """
    Runtime settings for the competitor watch pipeline.
    """

    watchlist_path: str
    default_days_back: int
    user_agent: str
    timeout_seconds: float
    max_retries: int
    backoff_initial_seconds: float
    backoff_multiplier: float
    rate_limit_per_second: float
    filing_delay_seconds: float
    max_workers: int
    max_analysis_attempts: int
    analysis_batch_size: int
    schedule_interval_minutes: int
    scheduler_enabled: bool
