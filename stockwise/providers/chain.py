"""
Ordered provider fallback chain.

Providers are tried in a fixed priority order; the first successful fetch
wins. The synthetic generator terminates the chain, so `get_quote` always
produces a Quote.
"""

import time
from typing import Any, Callable, Optional, Sequence

from ..data.models import FetchOutcome, FetchResult, Quote
from ..errors import NetworkFailureError, RateLimitedError
from ..logging.config import get_provider_logger
from .base import BaseQuoteProvider
from .synthetic import SyntheticQuoteGenerator

logger = get_provider_logger(__name__)


class DataSourceChain:
    """
    Deterministic provider fallback with sticky rate-limit cooldowns.

    A provider that answers RATE_LIMITED is skipped for `cooldown_seconds`
    (or the provider's Retry-After, whichever is longer). Each skipped or
    failed provider is recorded in `last_attempts` for diagnostics.
    """

    def __init__(self,
                 providers: Sequence[BaseQuoteProvider],
                 fallback: Optional[SyntheticQuoteGenerator] = None,
                 cooldown_seconds: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        names = [provider.name for provider in providers]
        if len(set(names)) != len(names):
            raise ValueError(f"Provider names must be unique, got {names}")

        self.providers = tuple(providers)
        self.fallback = fallback or SyntheticQuoteGenerator()
        self.cooldown_seconds = cooldown_seconds
        self.clock = clock

        self._cooldown_until: dict[str, float] = {}
        self.last_attempts: list[FetchResult] = []
        self.fallback_count = 0

    @property
    def provider_names(self) -> list[str]:
        return [provider.name for provider in self.providers] + [self.fallback.name]

    def in_cooldown(self, provider_name: str) -> bool:
        """True while a rate-limited provider must not be called."""
        until = self._cooldown_until.get(provider_name)
        if until is None:
            return False
        if self.clock() >= until:
            del self._cooldown_until[provider_name]
            return False
        return True

    def seed(self, symbol: str, price: float, trend_bias: Optional[float] = None) -> None:
        """Seed the synthetic series used when every real provider fails."""
        self.fallback.seed(symbol, price, trend_bias)

    async def get_quote(self, symbol: str) -> Quote:
        """
        Get a quote from the first provider that succeeds.

        Never raises for provider-level problems: network errors, rate
        limits, bad payloads and unexpected provider exceptions all fall
        through to the next source, ending at the synthetic generator.
        """
        symbol = symbol.strip().upper()
        attempts: list[FetchResult] = []

        for provider in self.providers:
            if self.in_cooldown(provider.name):
                attempts.append(FetchResult(
                    provider=provider.name,
                    outcome=FetchOutcome.RATE_LIMITED,
                    detail="skipped: rate-limit cooldown active",
                ))
                continue

            result = await self._attempt(provider, symbol)
            attempts.append(result)

            if result.success:
                self.fallback.anchor(result.quote)
                self.last_attempts = attempts
                return result.quote

            if result.outcome is FetchOutcome.RATE_LIMITED:
                self._start_cooldown(provider.name, result)

        result = await self.fallback.fetch(symbol)
        attempts.append(result)
        self.last_attempts = attempts
        self.fallback_count += 1

        logger.warning(
            "All real providers failed, serving synthetic quote",
            symbol=symbol,
            attempts=[f"{a.provider}:{a.outcome.value}" for a in attempts[:-1]],
        )
        return result.quote

    async def _attempt(self, provider: BaseQuoteProvider, symbol: str) -> FetchResult:
        try:
            return await provider.fetch(symbol)
        except Exception as e:
            logger.error(
                "Provider raised outside its classification",
                provider=provider.name,
                symbol=symbol,
                error=str(e),
                exc_info=True,
            )
            return FetchResult.from_failure(
                provider.name,
                NetworkFailureError(f"Unexpected provider error: {e}", provider=provider.name),
            )

    def _start_cooldown(self, provider_name: str, result: FetchResult) -> None:
        cooldown = self.cooldown_seconds
        if isinstance(result.error, RateLimitedError) and result.error.retry_after:
            cooldown = max(cooldown, result.error.retry_after)

        self._cooldown_until[provider_name] = self.clock() + cooldown
        logger.info(
            "Provider rate limited, cooling down",
            provider=provider_name,
            cooldown_seconds=cooldown,
        )

    def get_stats(self) -> dict[str, Any]:
        """Per-provider fetch statistics plus chain-level fallback count."""
        return {
            "providers": [provider.get_stats() for provider in self.providers],
            "synthetic": self.fallback.get_stats(),
            "fallback_count": self.fallback_count,
            "cooling_down": sorted(name for name in list(self._cooldown_until) if self.in_cooldown(name)),
        }

    async def aclose(self) -> None:
        for provider in self.providers:
            await provider.aclose()
