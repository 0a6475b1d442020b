"""
Significance tests and priority heuristics per source family.

All functions are pure; every priority is clamped to [1, 9].
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

MIN_PRIORITY = 1
MAX_PRIORITY = 9

PERMIT_KEYWORDS = (
    "multi",
    "apartment",
    "condo",
    "townhome",
    "mixed",
    "commercial",
    "office",
    "retail",
    "industrial",
)
PERMIT_VALUE_FIELDS = ("estimated_cost", "construction_value", "valuation")
PERMIT_VALUE_THRESHOLD = 500_000
_PERMIT_VALUE_TIERS = ((10_000_000, 9), (5_000_000, 8), (1_000_000, 7))

SIGNIFICANT_FILING_TYPES = (
    "8-K",
    "10-Q",
    "10-K",
    "DEF 14A",
    "S-1",
    "S-3",
    "S-4",
    "424B",
    "SC 13D",
    "SC 13G",
    "13F",
    "DEFA14A",
    "PREM14A",
    "DEFM14A",
)
# First matching substring wins; merger proxies come before the generic proxy.
_FILING_PRIORITIES = (
    (("DEFM14A", "PREM14A"), 9),
    (("8-K", "S-1", "S-3", "S-4", "SC 13"), 8),
    (("424B",), 7),
    (("10-Q", "10-K", "DEF 14A"), 6),
)
_TITLE_FORM_RE = re.compile(r"\(([^)]+)\)")
_SUMMARY_FORM_RE = re.compile(r"Form Type:\s*([^\n<]+)", re.IGNORECASE)

AGENDA_KEYWORDS = (
    "rezoning",
    "rezone",
    "site plan",
    "subdivision",
    "development",
    "construction",
    "building permit",
    "variance",
    "special use",
    "conditional use",
    "master plan",
    "annexation",
    "plat",
    "pud",
    "planned unit",
    "mixed use",
    "mixed-use",
    "multi-family",
    "multifamily",
    "apartment",
    "residential",
    "commercial",
)
STRUCTURED_AGENDA_PRIORITY = 7
GENERIC_AGENDA_PRIORITY = 6


def clamp_priority(value: int) -> int:
    return max(MIN_PRIORITY, min(MAX_PRIORITY, int(value)))


def permit_value(attributes: Mapping[str, Any]) -> float:
    """
    First parseable construction value among the known field names, else 0.
    """

    for field_name in PERMIT_VALUE_FIELDS:
        raw = attributes.get(field_name)
        if raw is None or isinstance(raw, bool):
            continue
        try:
            return float(str(raw).replace(",", "").replace("$", "").strip())
        except ValueError:
            continue
    return 0.0


def is_significant_permit(attributes: Mapping[str, Any]) -> bool:
    text = " ".join(
        str(attributes.get(field_name) or "")
        for field_name in ("permit_type", "type", "description", "work_description", "occupancy")
    ).lower()
    if any(keyword in text for keyword in PERMIT_KEYWORDS):
        return True
    return permit_value(attributes) > PERMIT_VALUE_THRESHOLD


def permit_priority(attributes: Mapping[str, Any]) -> int:
    priority = 5
    value = permit_value(attributes)
    for threshold, tier_priority in _PERMIT_VALUE_TIERS:
        if value > threshold:
            priority = tier_priority
            break

    description = str(attributes.get("description") or "").lower()
    if "multi" in description or "apartment" in description:
        priority = max(priority, 8)
    return clamp_priority(priority)


def extract_filing_type(
    *,
    category: str | None,
    title: str | None,
    summary: str | None,
) -> str:
    """
    Category term, then a parenthetical in the title, then a
    `Form Type:` line in the summary; "Unknown" when none is present.
    """

    if category and category.strip():
        return category.strip()

    if title:
        match = _TITLE_FORM_RE.search(title)
        if match and match.group(1).strip():
            return match.group(1).strip()

    if summary:
        match = _SUMMARY_FORM_RE.search(summary)
        if match and match.group(1).strip():
            return match.group(1).strip()

    return "Unknown"


def is_significant_filing(filing_type: str) -> bool:
    normalized = filing_type.upper()
    return any(form in normalized for form in SIGNIFICANT_FILING_TYPES)


def filing_priority(filing_type: str) -> int:
    normalized = filing_type.upper()
    for forms, priority in _FILING_PRIORITIES:
        if any(form in normalized for form in forms):
            return clamp_priority(priority)
    return clamp_priority(5)


def agenda_keyword_hit(*texts: str | None) -> bool:
    haystack = " ".join(text for text in texts if text).lower()
    if not haystack:
        return False
    return any(keyword in haystack for keyword in AGENDA_KEYWORDS)
