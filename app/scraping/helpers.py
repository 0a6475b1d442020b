"""
Shared, side-effect free helpers used by every source adapter.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Any
from urllib.parse import urljoin

DATE_PATTERNS = [
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m-%d-%Y",
    "%m-%d-%y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
]

NUMERIC_DATE_RE = re.compile(r"\d{1,2}[-/]\d{1,2}[-/]\d{2,4}")
_TEMPLATE_FIELD_RE = re.compile(r"\$\{([^}]+)\}")
_WHITESPACE_RE = re.compile(r"\s+")
_REPEATED_COMMA_RE = re.compile(r"\s*,(\s*,)+\s*")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def clean_text(value: object) -> str:
    if value is None:
        return ""
    return _WHITESPACE_RE.sub(" ", str(value)).strip()


def normalize_address(value: object) -> str:
    """
    Collapse whitespace and repeated commas; None or blank becomes "".
    """

    if value is None:
        return ""
    text = clean_text(value)
    text = _REPEATED_COMMA_RE.sub(", ", text)
    return text.strip(" ,")


def parse_date(value: object, *, now: datetime | None = None) -> datetime:
    """
    Best-effort timestamp parsing; never raises.

    Numbers are epoch milliseconds. Strings may be ISO-8601, RFC-822 or a
    common US date form. Anything unparseable falls back to `now`.
    The result is always timezone-aware UTC.
    """

    fallback = _as_utc(now) if now is not None else utc_now()
    parsed = try_parse_date(value)
    return parsed if parsed is not None else fallback


def find_date_in_text(text: str) -> datetime | None:
    """
    Return the first MM/DD/YY(YY) style date in free text, or None.
    """

    match = NUMERIC_DATE_RE.search(text or "")
    if match is None:
        return None
    return try_parse_date(match.group(0))


def compute_cutoff(days_back: int, *, now: datetime | None = None) -> datetime:
    reference = _as_utc(now) if now is not None else utc_now()
    return reference - timedelta(days=max(0, days_back))


def resolve_link(base_url: str, href: str | None) -> str | None:
    if not href or not href.strip():
        return None
    return urljoin(base_url, href.strip())


def render_template(template: str, fields: dict[str, Any]) -> str:
    """
    Substitute `${field}` placeholders; missing or null fields render empty.
    """

    def _replace(match: re.Match[str]) -> str:
        value = fields.get(match.group(1).strip())
        return "" if value is None else str(value)

    return _TEMPLATE_FIELD_RE.sub(_replace, template).strip()


def try_parse_date(value: object) -> datetime | None:
    """
    Like parse_date, but returns None instead of falling back.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, (int, float)):
        return _from_epoch_ms(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    if re.fullmatch(r"-?\d{10,}", text):
        return _from_epoch_ms(int(text))

    iso_candidate = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        return _as_utc(datetime.fromisoformat(iso_candidate))
    except ValueError:
        pass

    try:
        return _as_utc(parsedate_to_datetime(text))
    except (TypeError, ValueError, IndexError):
        pass

    compact = _WHITESPACE_RE.sub(" ", text)
    for pattern in DATE_PATTERNS:
        try:
            return datetime.strptime(compact, pattern).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def _from_epoch_ms(value: float) -> datetime | None:
    try:
        return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
