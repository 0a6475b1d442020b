"""Signal enrichment service.

Builds the analysis prompt, calls the configured LLM adapter and parses the
reply. Transport failures become a None result so callers can retry later.
"""

import logging
from functools import lru_cache
from typing import Any, Optional

from app.scraping.logging_utils import log_event
from enrichment.adapter import BaseLLMAdapter, MockLLMAdapter, OpenAILLMAdapter
from enrichment.config import EnrichmentSettings, get_enrichment_settings
from enrichment.errors import EnrichmentError
from enrichment.prompt_builder import SYSTEM_PROMPT, AnalysisPromptBuilder
from enrichment.schema import CompetitorAnalysisResult
from enrichment.validator import parse_analysis_response

logger = logging.getLogger(__name__)


class EnrichmentService:
    """Analyzes competitor-matched signals through an LLM adapter.

    A service built without an adapter is disabled and always returns None.
    """

    def __init__(
        self,
        adapter: Optional[BaseLLMAdapter],
        prompt_builder: Optional[AnalysisPromptBuilder] = None,
    ) -> None:
        self._adapter = adapter
        self._prompt_builder = prompt_builder or AnalysisPromptBuilder()

    @property
    def enabled(self) -> bool:
        return self._adapter is not None

    @property
    def model_name(self) -> Optional[str]:
        return self._adapter.model_name if self._adapter is not None else None

    def analyze_signal(self, signal: Any) -> Optional[CompetitorAnalysisResult]:
        """Return an analysis for the signal, or None when unavailable.

        Args:
            signal: A persisted CompetitorSignal (or any object exposing the
                same attributes).

        Returns:
            The parsed analysis, or None when enrichment is disabled or the
            endpoint failed.
        """
        if self._adapter is None:
            return None

        prompt = self._prompt_builder.build_prompt(signal)
        try:
            content = self._adapter.generate(SYSTEM_PROMPT, prompt)
        except EnrichmentError as exc:
            log_event(
                logger,
                logging.WARNING,
                "signal_enrichment_failed",
                signal_id=str(getattr(signal, "id", "")),
                stage=exc.stage,
                error=str(exc),
            )
            return None

        return parse_analysis_response(content)


def build_adapter(settings: EnrichmentSettings) -> Optional[BaseLLMAdapter]:
    if settings.adapter == "mock":
        return MockLLMAdapter()
    if settings.adapter == "openai":
        if not settings.api_key:
            log_event(
                logger,
                logging.WARNING,
                "enrichment_disabled",
                reason="no API key configured",
            )
            return None
        return OpenAILLMAdapter(
            model=settings.model,
            api_key=settings.api_key,
            base_url=settings.base_url,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
        )
    return None


@lru_cache(maxsize=1)
def get_enrichment_service() -> EnrichmentService:
    return EnrichmentService(build_adapter(get_enrichment_settings()))
