"""
Market data service coordinator.

Wires configuration into the data layer the dashboard talks to:

    providers → DataSourceChain → SubscriptionRegistry → callbacks

plus the portfolio ledger, the watchlist and the news service, all sharing
one HTTP client.
"""

from pathlib import Path
from typing import Any, Mapping, Optional

import httpx
import structlog

from .config.loader import ConfigLoader
from .config.validation import ConfigValidator
from .data.models import MarketStats, NewsArticle, Quote
from .feed.registry import QuoteCallback, SleepFactory, SubscriptionHandle, SubscriptionRegistry
from .news.service import NewsService
from .persistence.user_store import UserDataStore, Watchlist
from .portfolio.ledger import PositionLedger
from .portfolio.models import PortfolioTotals
from .providers import (
    AlphaVantageProvider,
    BaseQuoteProvider,
    DataSourceChain,
    SyntheticQuoteGenerator,
    TwelveDataProvider,
)

logger = structlog.get_logger(__name__)


class MarketDataService:
    """
    Facade over quotes, live subscriptions, portfolio and news.

    Use as an async context manager so poll tasks and the HTTP client are
    released on exit:

        async with MarketDataService.from_config() as service:
            handle = service.subscribe("AAPL", on_quote)
    """

    def __init__(self,
                 config: dict[str, Any],
                 client: Optional[httpx.AsyncClient] = None,
                 store: Optional[UserDataStore] = None,
                 sleep: Optional[SleepFactory] = None):
        errors = ConfigValidator.validate_config(config)
        if errors:
            for error in errors:
                logger.error("Invalid configuration", field=error.field,
                             message=error.message, value=error.value)
            raise ValueError(f"Invalid configuration: {', '.join(e.field for e in errors)}")

        self.config = config
        provider_config = config["providers"]
        credentials = config["credentials"]

        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=float(provider_config["timeout_seconds"]))

        self.providers = self._build_providers(provider_config, credentials)
        self.synthetic = SyntheticQuoteGenerator(config.get("synthetic", {}))
        self.chain = DataSourceChain(
            self.providers,
            fallback=self.synthetic,
            cooldown_seconds=float(provider_config["rate_limit_cooldown_seconds"]),
        )

        polling = config["polling"]
        registry_kwargs = {} if sleep is None else {"sleep": sleep}
        self.registry = SubscriptionRegistry(
            self.chain,
            interval_seconds=float(polling["interval_seconds"]),
            immediate_first_tick=bool(polling["immediate_first_tick"]),
            **registry_kwargs,
        )

        self.store = store or UserDataStore(config["persistence"]["path"])
        self.ledger = PositionLedger.from_store(self.store)
        self.watchlist = Watchlist.from_store(self.store)

        self.news = NewsService(
            config.get("news", {}),
            news_api_key=credentials.get("news_api_key", ""),
            marketaux_api_token=credentials.get("marketaux_api_token", "demo"),
            client=self.client,
        )

        logger.info("Market data service initialized",
                    providers=self.chain.provider_names,
                    positions=len(self.ledger),
                    watchlist=len(self.watchlist))

    @classmethod
    def from_config(cls,
                    config_dir: Optional[Path] = None,
                    overrides: Optional[dict[str, Any]] = None,
                    environ: Optional[Mapping[str, str]] = None,
                    **kwargs) -> "MarketDataService":
        """Build a service from defaults, settings.yaml, environment and overrides."""
        loader = ConfigLoader.create(config_dir)
        return cls(loader.merge_config(overrides, environ=environ), **kwargs)

    def _build_providers(self, provider_config: dict[str, Any],
                         credentials: dict[str, Any]) -> list[BaseQuoteProvider]:
        factories = {
            "twelve_data": lambda: TwelveDataProvider(
                provider_config, credentials["twelve_data_api_key"], client=self.client),
            "alpha_vantage": lambda: AlphaVantageProvider(
                provider_config, credentials["alpha_vantage_api_key"], client=self.client),
        }
        return [factories[name]() for name in provider_config["order"]]

    # ------------------------------------------------------------------
    # Quotes
    # ------------------------------------------------------------------

    async def get_quote(self, symbol: str) -> Quote:
        return await self.chain.get_quote(symbol)

    def subscribe(self, symbol: str, callback: QuoteCallback) -> SubscriptionHandle:
        return self.registry.subscribe(symbol, callback)

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        self.registry.unsubscribe(handle)

    def seed(self, symbol: str, price: float, trend_bias: Optional[float] = None) -> None:
        """Seed the fallback random walk for a symbol."""
        self.chain.seed(symbol, price, trend_bias)

    async def market_stats(self, symbol: str) -> Optional[MarketStats]:
        """Capitalization and ownership figures, None when no provider has them."""
        for provider in self.providers:
            if isinstance(provider, TwelveDataProvider):
                return await provider.fetch_market_stats(symbol)
        return None

    # ------------------------------------------------------------------
    # Portfolio
    # ------------------------------------------------------------------

    async def portfolio_totals(self) -> PortfolioTotals:
        """Value every open position at a fresh quote."""
        quotes = {}
        for symbol in self.ledger.symbols():
            quotes[symbol] = await self.chain.get_quote(symbol)
        return self.ledger.totals(quotes)

    # ------------------------------------------------------------------
    # News
    # ------------------------------------------------------------------

    async def financial_news(self, query: Optional[str] = None) -> list[NewsArticle]:
        return await self.news.financial_news(query)

    async def symbol_news(self, symbol: str) -> list[NewsArticle]:
        return await self.news.symbol_news(symbol)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Stop every poll task and close the HTTP client."""
        await self.registry.aclose()
        await self.chain.aclose()
        await self.news.aclose()
        if self._owns_client:
            await self.client.aclose()
        logger.info("Market data service closed")

    async def __aenter__(self) -> "MarketDataService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def get_stats(self) -> dict[str, Any]:
        return {
            "chain": self.chain.get_stats(),
            "registry": self.registry.get_stats(),
        }
