"""LLM adapters for signal enrichment.

Provides a base interface, an adapter for OpenAI-compatible chat completion
endpoints (OpenAI, OpenRouter) and a deterministic mock for tests.
"""

import json
from abc import ABC, abstractmethod
from typing import Optional

from enrichment.errors import EnrichmentError


class BaseLLMAdapter(ABC):
    """Abstract base for all LLM adapters."""

    model_name: str = "unknown"

    @abstractmethod
    def generate(self, system_prompt: str, prompt: str) -> str:
        """Send a prompt to the LLM and return the raw response text.

        Args:
            system_prompt: Role instructions for the model.
            prompt: The fully formatted user prompt.

        Returns:
            Raw string response from the model.

        Raises:
            EnrichmentError: On transport failures or an empty completion.
        """


class OpenAILLMAdapter(BaseLLMAdapter):
    """Adapter for OpenAI-compatible chat completion APIs."""

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        max_tokens: int = 2000,
        temperature: float = 0.3,
        timeout_seconds: float = 120.0,
    ) -> None:
        """Initialise the OpenAI adapter.

        Args:
            model: Model identifier, e.g. ``perplexity/sonar-deep-research``.
            api_key: API key for the endpoint.
            base_url: Optional base URL for OpenAI-compatible endpoints.
            max_tokens: Maximum tokens in the completion.
            temperature: Sampling temperature.
            timeout_seconds: Per-request timeout.
        """
        try:
            from openai import OpenAI  # type: ignore[import-untyped]
        except ImportError as exc:
            raise ImportError(
                "openai package is required for OpenAILLMAdapter. "
                "Install it with: pip install openai"
            ) from exc

        client_kwargs: dict = {"api_key": api_key, "timeout": timeout_seconds}
        if base_url:
            client_kwargs["base_url"] = base_url

        self._client = OpenAI(**client_kwargs)
        self.model_name = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    def generate(self, system_prompt: str, prompt: str) -> str:
        from openai import OpenAIError  # type: ignore[import-untyped]

        try:
            response = self._client.chat.completions.create(
                model=self.model_name,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                stream=False,
            )
        except OpenAIError as exc:
            raise EnrichmentError("transport", str(exc)) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise EnrichmentError("empty_response", "completion has no content")
        return content


_MOCK_RESPONSE_JSON = json.dumps(
    {
        "analysis": "Mock analysis: competitor activity detected in a monitored market.",
        "impact": "medium",
        "confidence": 0.75,
        "recommendations": [
            "Review nearby land availability before the next site selection meeting",
            "Track follow-up filings for this project over the next quarter",
        ],
    },
    indent=2,
)


class MockLLMAdapter(BaseLLMAdapter):
    """Deterministic adapter that returns a fixed valid JSON response.

    Used for local runs and CI pipelines where no LLM API is available.
    """

    model_name = "mock"

    def __init__(self, response: str = _MOCK_RESPONSE_JSON) -> None:
        self._response = response
        self.prompts: list = []

    def generate(self, system_prompt: str, prompt: str) -> str:
        self.prompts.append(prompt)
        return self._response
