"""Prompt builder for competitor signal analysis."""

from typing import Any, Dict

SYSTEM_PROMPT = (
    "You are a real estate market intelligence analyst for a multifamily "
    "developer. Analyze competitor activities and provide strategic insights."
)

_RESPONSE_INSTRUCTIONS = """\
Provide:
1. Strategic analysis of what this means for our development pipeline
2. Potential impact on our market position
3. Recommended actions we should take
4. Confidence level in this assessment (0-1)

Format as JSON with fields: analysis, impact (low/medium/high/critical), confidence, recommendations (array)"""


class AnalysisPromptBuilder:
    """Builds the analysis prompt for one signal.

    Every prompt carries the common signal header; permits, filings and
    agendas each add their own detail block.
    """

    def build_prompt(self, signal: Any) -> str:
        raw: Dict[str, Any] = signal.raw_data or {}
        lines = [
            f"Analyze this {signal.type} signal:",
            "",
            f"Competitor: {signal.competitor_match}",
            f"Type: {signal.type}",
            f"Location: {signal.jurisdiction}",
            f"Date: {signal.when_iso.isoformat() if signal.when_iso else 'Unknown'}",
            f"Title: {signal.title}",
        ]
        if signal.address:
            lines.append(f"Address: {signal.address}")

        details = self._details(signal, raw)
        if details:
            lines.extend(["", *details])

        lines.extend(["", _RESPONSE_INSTRUCTIONS])
        return "\n".join(lines)

    @staticmethod
    def _details(signal: Any, raw: Dict[str, Any]) -> list:
        if signal.type == "permit":
            return [
                "Permit Details:",
                f"- Type: {raw.get('permit_type') or 'Unknown'}",
                f"- Description: {raw.get('description') or raw.get('work_description') or 'N/A'}",
                f"- Value: {raw.get('estimated_cost') or raw.get('construction_value') or 'Unknown'}",
                f"- Occupancy: {raw.get('occupancy') or 'Unknown'}",
            ]
        if signal.type == "sec_filing":
            return [
                "Filing Details:",
                f"- Filing Type: {raw.get('filingType')}",
                f"- Company: {raw.get('companyName')}",
                f"- CIK: {raw.get('cik')}",
            ]
        if signal.type == "agenda":
            return [
                f"Meeting: {signal.title}",
                f"Link: {signal.link or 'N/A'}",
            ]
        return []
