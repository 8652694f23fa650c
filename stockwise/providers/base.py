"""Base classes for upstream quote providers."""

from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from ..data.models import FetchOutcome, FetchResult, Quote
from ..data.normalizer import QuoteNormalizer
from ..errors import (
    BadResponseShapeError,
    MalformedResponse,
    NetworkFailureError,
    ProviderFailure,
    RateLimitedError,
)
from ..logging.config import get_provider_logger, log_provider_outcome


async def request_json(client: httpx.AsyncClient,
                       provider: str,
                       url: str,
                       params: dict[str, str],
                       headers: Optional[dict[str, str]] = None,
                       timeout: float = 10.0) -> Any:
    """
    GET a JSON document from an upstream provider.

    Raises:
        RateLimitedError: HTTP 429
        NetworkFailureError: Timeout, transport error or other non-2xx status
        BadResponseShapeError: Body is not JSON
    """
    try:
        response = await client.get(url, params=params, headers=headers, timeout=timeout)
    except httpx.TimeoutException as e:
        raise NetworkFailureError(f"Timeout: {e}", provider=provider)
    except httpx.RequestError as e:
        raise NetworkFailureError(f"Network error: {e}", provider=provider)

    if response.status_code == 429:
        retry_after = response.headers.get("Retry-After")
        raise RateLimitedError(
            "HTTP 429: rate limited",
            provider=provider,
            retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
        )

    if not response.is_success:
        raise NetworkFailureError(
            f"HTTP {response.status_code}: {response.text[:200]}",
            provider=provider,
            status_code=response.status_code,
        )

    try:
        return response.json()
    except ValueError as e:
        raise BadResponseShapeError(
            f"Response is not JSON: {e}",
            provider=provider,
            raw_data=response.text[:200],
        )


class BaseQuoteProvider(ABC):
    """
    Base class for quote providers.

    Subclasses declare how to build the request and how to recognize the
    provider's in-band error payloads. Everything that can go wrong inside
    one fetch is raised as a ProviderFailure and converted to a classified
    FetchResult at the `fetch` boundary, so callers iterate results rather
    than unwinding exceptions.
    """

    def __init__(self, name: str, config: dict[str, Any]):
        self.name = name
        self.config = config
        self.logger = get_provider_logger(f"stockwise.providers.{name}")
        self._fetch_count = 0
        self._outcome_counts = {outcome: 0 for outcome in FetchOutcome}

    @abstractmethod
    async def fetch_quote(self, symbol: str) -> Quote:
        """
        Fetch and normalize a quote.

        Raises:
            ProviderFailure: Any classified failure
        """

    async def fetch(self, symbol: str) -> FetchResult:
        """Fetch a quote and classify the outcome. Never raises ProviderFailure."""
        symbol = symbol.strip().upper()
        self._fetch_count += 1

        try:
            quote = await self.fetch_quote(symbol)
            result = FetchResult.ok(self.name, quote)
        except ProviderFailure as e:
            result = FetchResult.from_failure(self.name, e)

        self._outcome_counts[result.outcome] += 1
        log_provider_outcome(
            self.logger,
            provider=self.name,
            symbol=symbol,
            outcome=result.outcome.value,
            detail=result.detail,
        )
        return result

    def get_stats(self) -> dict[str, Any]:
        """Get fetch statistics."""
        successes = self._outcome_counts[FetchOutcome.SUCCESS]
        return {
            "name": self.name,
            "fetch_count": self._fetch_count,
            "outcomes": {outcome.value: count for outcome, count in self._outcome_counts.items()},
            "success_rate": successes / self._fetch_count if self._fetch_count > 0 else 0.0,
        }

    def reset_stats(self) -> None:
        """Reset fetch statistics."""
        self._fetch_count = 0
        self._outcome_counts = {outcome: 0 for outcome in FetchOutcome}

    async def aclose(self) -> None:
        """Release resources owned by the provider."""


class HttpQuoteProvider(BaseQuoteProvider):
    """Quote provider backed by a JSON-over-HTTP API."""

    def __init__(self,
                 name: str,
                 config: dict[str, Any],
                 base_url: str,
                 api_key: str,
                 client: Optional[httpx.AsyncClient] = None,
                 normalizer: Optional[QuoteNormalizer] = None):
        super().__init__(name, config)
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_seconds = float(config.get("timeout_seconds", 10.0))
        self.normalizer = normalizer or QuoteNormalizer()

        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._client

    @abstractmethod
    def build_quote_request(self, symbol: str) -> tuple[str, dict[str, str]]:
        """Return (url, query params) for a quote request."""

    def check_payload(self, payload: Any) -> None:
        """
        Raise for in-band error payloads (rate-limit notes, error objects).

        The default accepts everything and leaves shape checks to the
        normalizer.
        """

    async def fetch_quote(self, symbol: str) -> Quote:
        url, params = self.build_quote_request(symbol)
        payload = await self.get_json(url, params)
        self.check_payload(payload)

        try:
            return self.normalizer.normalize(self.name, payload, symbol=symbol)
        except MalformedResponse as e:
            e.provider = self.name
            raise

    async def get_json(self, url: str, params: dict[str, str],
                       headers: Optional[dict[str, str]] = None) -> Any:
        """GET a JSON document, raising classified provider failures."""
        return await request_json(self.client, self.name, url, params,
                                  headers=headers, timeout=self.timeout_seconds)

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
