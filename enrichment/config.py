"""Environment-driven settings for the enrichment client."""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from db.config import load_env_files

_ADAPTERS = {"openai", "mock", "disabled"}


@dataclass(frozen=True)
class EnrichmentSettings:
    adapter: str
    api_key: Optional[str]
    base_url: Optional[str]
    model: str
    max_tokens: int
    temperature: float


def _get_str_env(name: str, default: Optional[str]) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return default
    stripped = raw.strip()
    return stripped if stripped else default


def _get_number_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@lru_cache(maxsize=1)
def get_enrichment_settings() -> EnrichmentSettings:
    """Return cached enrichment settings.

    ENRICHMENT_ADAPTER selects openai, mock or disabled. Unknown values
    fall back to disabled.
    """
    load_env_files()
    adapter = (_get_str_env("ENRICHMENT_ADAPTER", "openai") or "openai").lower()
    if adapter not in _ADAPTERS:
        adapter = "disabled"

    return EnrichmentSettings(
        adapter=adapter,
        api_key=_get_str_env("OPENROUTER_API_KEY", None) or _get_str_env("OPENAI_API_KEY", None),
        base_url=_get_str_env("ENRICHMENT_BASE_URL", "https://openrouter.ai/api/v1"),
        model=_get_str_env("ENRICHMENT_MODEL", "perplexity/sonar-deep-research")
        or "perplexity/sonar-deep-research",
        max_tokens=int(_get_number_env("ENRICHMENT_MAX_TOKENS", 2000)),
        temperature=_get_number_env("ENRICHMENT_TEMPERATURE", 0.3),
    )
