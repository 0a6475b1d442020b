"""Structured output schema for competitor signal analyses."""

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

MAX_RECOMMENDATIONS = 5

ImpactLevel = Literal["low", "medium", "high", "critical"]


class CompetitorAnalysisResult(BaseModel):
    """Validated enrichment output for one signal."""

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        str_strip_whitespace=True,
    )

    analysis: str = Field(min_length=1)
    impact: ImpactLevel = "medium"
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    recommendations: List[str] = Field(default_factory=list, max_length=MAX_RECOMMENDATIONS)
