"""AI enrichment of competitor signals."""

from enrichment.schema import CompetitorAnalysisResult
from enrichment.service import EnrichmentService, get_enrichment_service

__all__ = [
    "CompetitorAnalysisResult",
    "EnrichmentService",
    "get_enrichment_service",
]
