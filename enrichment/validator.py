"""Parsing layer for raw analysis responses.

Tries a JSON object first and falls back to extracting impact, confidence
and recommendations from free text.
"""

import json
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from enrichment.schema import MAX_RECOMMENDATIONS, CompetitorAnalysisResult

_IMPACT_LEVELS = ("low", "medium", "high", "critical")
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_IMPACT_RE = re.compile(r"impact[\s:*\"]*(low|medium|high|critical)", re.IGNORECASE)
_CONFIDENCE_RE = re.compile(r"confidence[\s:*\"]*(\d+(?:\.\d+)?)", re.IGNORECASE)
_NUMBERED_RE = re.compile(r"^\s*\d+[.)]\s*(.+)$", re.MULTILINE)
_BULLET_RE = re.compile(r"^\s*[•\-*]\s*(.+)$", re.MULTILINE)
_MIN_RECOMMENDATION_LENGTH = 10


def _strip_markdown_fences(text: str) -> str:
    """Remove optional markdown code fences wrapping JSON."""
    stripped = text.strip()
    match = re.match(
        r"^```(?:json)?\s*\n?(.*?)\n?\s*```$",
        stripped,
        re.DOTALL,
    )
    if match:
        return match.group(1).strip()
    return stripped


def parse_analysis_response(content: str) -> CompetitorAnalysisResult:
    """Turn a raw model reply into a validated analysis.

    Args:
        content: Raw completion text.

    Returns:
        A CompetitorAnalysisResult. Never raises for malformed replies; the
        text fallback always produces a result.
    """
    payload = _load_json_object(content)
    if payload is not None:
        try:
            return CompetitorAnalysisResult.model_validate(_normalize_payload(payload, content))
        except ValidationError:
            pass
    return _parse_text(content)


def _load_json_object(content: str) -> Optional[Dict[str, Any]]:
    cleaned = _strip_markdown_fences(content)
    candidates = [cleaned]
    match = _JSON_OBJECT_RE.search(cleaned)
    if match and match.group(0) != cleaned:
        candidates.append(match.group(0))

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except (json.JSONDecodeError, TypeError):
            continue
        if isinstance(data, dict):
            return data
    return None


def _normalize_payload(data: Dict[str, Any], content: str) -> Dict[str, Any]:
    recommendations = data.get("recommendations") or []
    if isinstance(recommendations, str):
        recommendations = [recommendations]
    return {
        "analysis": str(data.get("analysis") or content).strip(),
        "impact": _normalize_impact(data.get("impact")),
        "confidence": _normalize_confidence(data.get("confidence")),
        "recommendations": [
            str(item).strip() for item in recommendations if str(item).strip()
        ][:MAX_RECOMMENDATIONS],
    }


def _parse_text(content: str) -> CompetitorAnalysisResult:
    impact_match = _IMPACT_RE.search(content)
    confidence_match = _CONFIDENCE_RE.search(content)
    return CompetitorAnalysisResult(
        analysis=content.strip(),
        impact=_normalize_impact(impact_match.group(1) if impact_match else None),
        confidence=_normalize_confidence(confidence_match.group(1) if confidence_match else None),
        recommendations=extract_recommendations(content),
    )


def extract_recommendations(content: str) -> List[str]:
    """Numbered items first, then bullets; longer than 10 chars, max 5."""
    recommendations: List[str] = []
    for pattern in (_NUMBERED_RE, _BULLET_RE):
        for match in pattern.finditer(content):
            cleaned = match.group(1).strip()
            if len(cleaned) > _MIN_RECOMMENDATION_LENGTH and cleaned not in recommendations:
                recommendations.append(cleaned)
    return recommendations[:MAX_RECOMMENDATIONS]


def _normalize_impact(value: Any) -> str:
    normalized = str(value or "").strip().lower()
    return normalized if normalized in _IMPACT_LEVELS else "medium"


def _normalize_confidence(value: Any) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return 0.5
    if 1.0 < confidence <= 100.0:
        confidence = confidence / 100.0
    return min(1.0, max(0.0, confidence))
