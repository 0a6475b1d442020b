"""
Environment + JSON watchlist loader for competitor watch.
"""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import asdict
from functools import lru_cache
from pathlib import Path
from typing import Any

from db.config import load_env_files

from app.scraping.config.models import (
    AgendaConfig,
    AgendaFormat,
    CompetitorWatchSettings,
    DatasetConfig,
    EntityConfig,
    JurisdictionConfig,
    Watchlist,
)
from app.scraping.errors import ConfigurationError

_ENTITY_TYPES = {"company", "person"}


def _get_bool_env(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    stripped = raw.strip()
    return stripped if stripped else default


def _project_root() -> Path:
    return Path(__file__).resolve().parents[3]


def _resolve_config_path(raw_path: str) -> Path:
    candidate = Path(raw_path)
    if candidate.is_absolute():
        return candidate
    return (_project_root() / candidate).resolve()


@lru_cache(maxsize=1)
def get_competitor_watch_settings() -> CompetitorWatchSettings:
    """
    Return cached competitor watch settings from environment variables.
    """

    load_env_files()
    watchlist_path = _get_str_env(
        "COMPETITOR_WATCHLIST_PATH",
        "app/scraping/config/watchlist.json",
    )
    return CompetitorWatchSettings(
        watchlist_path=str(_resolve_config_path(watchlist_path)),
        default_days_back=max(1, _get_int_env("COMPETITOR_WATCH_DAYS_BACK", 30)),
        user_agent=_get_str_env(
            "COMPETITOR_WATCH_USER_AGENT",
            "CompetitorWatch/1.0 (ops@example.com)",
        ),
        timeout_seconds=max(1.0, _get_float_env("COMPETITOR_WATCH_TIMEOUT_SECONDS", 30.0)),
        max_retries=max(0, _get_int_env("COMPETITOR_WATCH_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(
            0.1,
            _get_float_env("COMPETITOR_WATCH_BACKOFF_INITIAL_SECONDS", 1.0),
        ),
        backoff_multiplier=max(
            1.0,
            _get_float_env("COMPETITOR_WATCH_BACKOFF_MULTIPLIER", 2.0),
        ),
        rate_limit_per_second=max(
            0.1,
            _get_float_env("COMPETITOR_WATCH_RATE_LIMIT_PER_SECOND", 2.0),
        ),
        filing_delay_seconds=max(
            0.0,
            _get_float_env("COMPETITOR_WATCH_FILING_DELAY_SECONDS", 1.0),
        ),
        max_workers=max(1, _get_int_env("COMPETITOR_WATCH_MAX_WORKERS", 1)),
        max_analysis_attempts=max(1, _get_int_env("COMPETITOR_WATCH_MAX_ANALYSIS_ATTEMPTS", 3)),
        analysis_batch_size=max(1, _get_int_env("COMPETITOR_WATCH_ANALYSIS_BATCH_SIZE", 100)),
        schedule_interval_minutes=max(
            1,
            _get_int_env("COMPETITOR_WATCH_INTERVAL_MINUTES", 360),
        ),
        scheduler_enabled=_get_bool_env("COMPETITOR_WATCH_SCHEDULER_ENABLED", False),
    )


def load_watchlist(*, watchlist_path: str) -> Watchlist:
    """
    Load and validate the static watchlist JSON file.
    """

    path = _resolve_config_path(watchlist_path)
    if not path.exists():
        raise ConfigurationError(f"Watchlist file not found: {path}")

    try:
        raw_data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Watchlist file is not valid JSON: {path}: {exc}") from exc
    if not isinstance(raw_data, dict):
        raise ConfigurationError("Invalid watchlist: top level must be an object.")

    jurisdictions = _require_list(raw_data, "jurisdictions")
    entities = _require_list(raw_data, "entities")
    sec_ciks = _require_list(raw_data, "sec_ciks")

    return Watchlist(
        jurisdictions=tuple(parse_jurisdiction(entry) for entry in jurisdictions),
        entities=tuple(parse_entity(entry) for entry in entities),
        sec_ciks=tuple(_normalize_cik(value) for value in sec_ciks),
    )


def parse_jurisdiction(raw: object) -> JurisdictionConfig:
    if not isinstance(raw, Mapping):
        raise ConfigurationError("Invalid jurisdiction entry: expected an object.")

    key = _required_str(raw, "key", context="jurisdiction")
    bbox = raw.get("bbox")
    if bbox is not None:
        if not isinstance(bbox, list) or len(bbox) != 4:
            raise ConfigurationError(f"Jurisdiction '{key}': bbox must be [minLon, minLat, maxLon, maxLat].")
        bbox = tuple(float(value) for value in bbox)

    return JurisdictionConfig(
        key=key,
        label=_required_str(raw, "label", context=f"jurisdiction '{key}'"),
        state=_required_str(raw, "state", context=f"jurisdiction '{key}'").upper(),
        bbox=bbox,
        datasets=tuple(parse_dataset(item) for item in raw.get("datasets") or []),
        agendas=tuple(parse_agenda(item) for item in raw.get("agendas") or []),
        env_notices=tuple(str(item) for item in raw.get("env_notices") or []),
        active=bool(raw.get("active", True)),
        scrape_frequency=int(raw.get("scrape_frequency", 360)),
    )


def parse_dataset(raw: object) -> DatasetConfig:
    """
    Build a dataset config from stored or file JSON.
    """

    if not isinstance(raw, Mapping):
        raise ConfigurationError("Invalid dataset entry: expected an object.")
    return DatasetConfig(
        type=_required_str(raw, "type", context="dataset").lower(),
        label=_required_str(raw, "label", context="dataset"),
        url=_required_str(raw, "url", context="dataset").rstrip("/"),
        date_field=_optional_str(raw.get("date_field")),
        address_field=_optional_str(raw.get("address_field")),
        parcel_field=_optional_str(raw.get("parcel_field")),
        title_template=_optional_str(raw.get("title_template")),
        link_template=_optional_str(raw.get("link_template")),
    )


def parse_agenda(raw: object) -> AgendaConfig:
    """
    Build an agenda config from stored or file JSON.
    """

    if not isinstance(raw, Mapping):
        raise ConfigurationError("Invalid agenda entry: expected an object.")
    label = _required_str(raw, "label", context="agenda")
    agenda_format = _required_str(raw, "format", context=f"agenda '{label}'").lower()
    allowed = {item.value for item in AgendaFormat}
    if agenda_format not in allowed:
        raise ConfigurationError(
            f"Agenda '{label}': unknown format '{agenda_format}'. "
            f"Allowed formats: {', '.join(sorted(allowed))}."
        )
    return AgendaConfig(
        label=label,
        url=_required_str(raw, "url", context=f"agenda '{label}'"),
        format=agenda_format,
    )


def parse_entity(raw: object) -> EntityConfig:
    if not isinstance(raw, Mapping):
        raise ConfigurationError("Invalid entity entry: expected an object.")

    name = _required_str(raw, "name", context="entity")
    entity_type = str(raw.get("type", "company")).strip().lower()
    if entity_type not in _ENTITY_TYPES:
        raise ConfigurationError(f"Entity '{name}': type must be company or person.")

    keywords = raw.get("keywords") or []
    if not isinstance(keywords, list) or not keywords:
        raise ConfigurationError(f"Entity '{name}': keywords must be a non-empty list.")

    cik = raw.get("cik")
    return EntityConfig(
        name=name,
        type=entity_type,
        keywords=tuple(str(keyword).strip() for keyword in keywords if str(keyword).strip()),
        cik=_normalize_cik(cik) if cik else None,
        active=bool(raw.get("active", True)),
    )


def dataset_to_mapping(config: DatasetConfig) -> dict[str, Any]:
    return {key: value for key, value in asdict(config).items() if value is not None}


def agenda_to_mapping(config: AgendaConfig) -> dict[str, Any]:
    return asdict(config)


def _normalize_cik(value: object) -> str:
    digits = str(value).strip()
    if not digits.isdigit():
        raise ConfigurationError(f"Invalid CIK '{value}': expected digits only.")
    return digits.zfill(10)


def _require_list(raw: Mapping[str, Any], key: str) -> list[Any]:
    value = raw.get(key, [])
    if not isinstance(value, list):
        raise ConfigurationError(f"Invalid watchlist: '{key}' must be a list.")
    return value


def _required_str(raw: Mapping[str, Any], key: str, *, context: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"Invalid {context}: missing required field '{key}'.")
    return value.strip()


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None
