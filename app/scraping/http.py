"""
Shared HTTP fetch helper for source adapters.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

import requests

from app.scraping.config.models import CompetitorWatchSettings
from app.scraping.errors import SourceFetchError
from app.scraping.logging_utils import log_event
from app.scraping.rate_limiter import DomainRateLimiter

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class SourceHttpClient:
    """
    GET with per-host throttling, bounded timeout and exponential backoff.

    Exhausted retries, non-retryable statuses and undecodable JSON all
    surface as SourceFetchError.
    """

    def __init__(
        self,
        *,
        settings: CompetitorWatchSettings,
        session: requests.Session | None = None,
        rate_limiter: DomainRateLimiter | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings
        self._session = session or requests.Session()
        self._rate_limiter = rate_limiter or DomainRateLimiter(
            rate_limit_per_second=settings.rate_limit_per_second
        )
        self._sleep = sleep
        self._headers = {"User-Agent": settings.user_agent}

    def get_json(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        response = self._request_with_retry(url, params=params, accept="application/json")
        try:
            return response.json()
        except ValueError as exc:
            raise SourceFetchError(f"Invalid JSON from {url}: {exc}", url=url) from exc

    def get_text(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
    ) -> str:
        return self._request_with_retry(url, params=params).text

    def _request_with_retry(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        accept: str | None = None,
    ) -> requests.Response:
        headers = dict(self._headers)
        if accept:
            headers["Accept"] = accept

        last_error: str | None = None
        for attempt in range(self._settings.max_retries + 1):
            self._rate_limiter.wait(url)
            try:
                response = self._session.get(
                    url,
                    params=dict(params) if params else None,
                    headers=headers,
                    timeout=self._settings.timeout_seconds,
                    allow_redirects=True,
                )
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error = f"{type(exc).__name__}: {exc}"
            except requests.RequestException as exc:
                raise SourceFetchError(f"GET {url} failed: {exc}", url=url) from exc
            else:
                if response.status_code in RETRYABLE_STATUS_CODES:
                    last_error = f"retryable status={response.status_code}"
                elif response.status_code >= 400:
                    raise SourceFetchError(
                        f"GET {url} returned status={response.status_code}",
                        url=url,
                        status_code=response.status_code,
                    )
                else:
                    return response

            if attempt >= self._settings.max_retries:
                break

            backoff_seconds = self._settings.backoff_initial_seconds * (
                self._settings.backoff_multiplier**attempt
            )
            log_event(
                logger,
                logging.WARNING,
                "source_request_retry",
                url=url,
                attempt=attempt + 1,
                backoff_seconds=backoff_seconds,
                error=last_error,
            )
            self._sleep(backoff_seconds)

        raise SourceFetchError(f"Failed to fetch {url} after retries: {last_error}", url=url)
