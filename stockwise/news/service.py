"""
Financial news retrieval with provider fallback.

Sources are tried in order: NewsAPI (only when an API key is configured),
Marketaux, then a small set of canned articles so the news panel is never
empty. Every returned article is tagged with a sentiment label and, when
one is mentioned, a ticker symbol.
"""

import re
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Sequence

import httpx

from ..data.models import NewsArticle
from ..data.normalizer import QuoteNormalizer
from ..errors import ProviderFailure
from ..logging.config import get_provider_logger
from ..providers.base import request_json
from ..utils.time import format_time_ago, utc_now
from .sentiment import SentimentScorer

logger = get_provider_logger(__name__)

KNOWN_SYMBOLS = (
    "AAPL", "MSFT", "GOOGL", "AMZN", "TSLA", "NVDA", "META", "NFLX",
    "JPM", "JNJ", "V", "PG", "MA", "DIS", "ADBE", "PYPL", "CRM",
    "NKE", "PFE", "INTC", "AMD", "BABA", "UBER", "SPOT",
)

REMOVED_MARKER = "[Removed]"


def extract_symbol(text: str, symbols: Sequence[str] = KNOWN_SYMBOLS) -> Optional[str]:
    """First known ticker that appears in `text` as a whole uppercase word."""
    for symbol in symbols:
        if re.search(rf"\b{re.escape(symbol)}\b", text):
            return symbol
    return None


def is_displayable(article: NewsArticle) -> bool:
    """Articles need a title and description, and must not be takedown stubs."""
    return bool(article.title and article.description and REMOVED_MARKER not in article.title)


class NewsService:
    """News fetcher used by the dashboard's news panels."""

    def __init__(self,
                 config: Optional[dict[str, Any]] = None,
                 news_api_key: str = "",
                 marketaux_api_token: str = "demo",
                 client: Optional[httpx.AsyncClient] = None,
                 scorer: Optional[SentimentScorer] = None,
                 normalizer: Optional[QuoteNormalizer] = None,
                 clock: Callable[[], datetime] = utc_now):
        self.config = config or {}
        self.news_api_key = news_api_key
        self.marketaux_api_token = marketaux_api_token
        self.scorer = scorer or SentimentScorer()
        self.normalizer = normalizer or QuoteNormalizer()
        self.clock = clock

        self.news_api_url = self.config.get("news_api_url", "https://newsapi.org/v2").rstrip("/")
        self.marketaux_url = self.config.get("marketaux_url", "https://api.marketaux.com/v1").rstrip("/")
        self.default_query = self.config.get("default_query", "stock market OR finance OR economy OR trading")
        self.page_size = int(self.config.get("page_size", 20))
        self.symbol_page_size = int(self.config.get("symbol_page_size", 10))
        self.marketaux_symbols = list(self.config.get("marketaux_symbols", ["TSLA", "AMZN", "MSFT"]))
        self.timeout_seconds = float(self.config.get("timeout_seconds", 10.0))

        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._client

    async def financial_news(self, query: Optional[str] = None) -> list[NewsArticle]:
        """General market news: NewsAPI, then Marketaux, then canned articles."""
        articles = None

        if self.news_api_key:
            articles = await self._try_source(
                "news_api", self._fetch_news_api(query or self.default_query, self.page_size)
            )

        if articles is None:
            articles = await self._try_source("marketaux", self._fetch_marketaux(self.marketaux_symbols))

        if articles is None:
            articles = self.canned_market_news()

        return self.tag_articles(articles)

    async def symbol_news(self, symbol: str) -> list[NewsArticle]:
        """News about one ticker: NewsAPI, then canned articles for the ticker."""
        symbol = symbol.strip().upper()
        articles = None

        if self.news_api_key:
            articles = await self._try_source(
                "news_api", self._fetch_news_api(symbol, self.symbol_page_size)
            )

        if articles is None:
            articles = self.canned_symbol_news(symbol)

        return self.tag_articles(articles)

    def tag_articles(self, articles: list[NewsArticle]) -> list[NewsArticle]:
        """Attach sentiment labels and mentioned tickers."""
        return [
            replace(
                article,
                sentiment=self.scorer.score(article.text).value,
                symbol=extract_symbol(article.text),
            )
            for article in articles
        ]

    def time_ago(self, article: NewsArticle) -> str:
        """Relative publication time such as "3 hours ago"."""
        return format_time_ago(article.published_at, now=self.clock())

    async def _try_source(self, name: str, fetch) -> Optional[list[NewsArticle]]:
        try:
            articles = await fetch
        except ProviderFailure as e:
            logger.warning("News source failed", provider=name, error=str(e))
            return None

        displayable = [article for article in articles if is_displayable(article)]
        logger.debug("News source succeeded", provider=name,
                     received=len(articles), kept=len(displayable))
        return displayable

    async def _fetch_news_api(self, query: str, page_size: int) -> list[NewsArticle]:
        payload = await request_json(
            self.client,
            "news_api",
            f"{self.news_api_url}/everything",
            {
                "q": query,
                "language": "en",
                "sortBy": "publishedAt",
                "pageSize": str(page_size),
            },
            headers={"X-Api-Key": self.news_api_key},
            timeout=self.timeout_seconds,
        )
        return self.normalizer.normalize_articles("news_api", payload)

    async def _fetch_marketaux(self, symbols: list[str]) -> list[NewsArticle]:
        payload = await request_json(
            self.client,
            "marketaux",
            f"{self.marketaux_url}/news/all",
            {
                "symbols": ",".join(symbols),
                "filter_entities": "true",
                "language": "en",
                "api_token": self.marketaux_api_token,
            },
            timeout=self.timeout_seconds,
        )
        return self.normalizer.normalize_articles("marketaux", payload)

    def canned_market_news(self) -> list[NewsArticle]:
        now = self.clock()
        return [
            NewsArticle(
                title="Stock Market Reaches New Heights Amid Economic Recovery",
                description="Major indices continue their upward trajectory as investors "
                            "remain optimistic about economic growth prospects.",
                source="Financial Times",
                published_at=now,
            ),
            NewsArticle(
                title="Tech Stocks Lead Market Rally",
                description="Technology companies are driving market gains as digital "
                            "transformation accelerates across industries.",
                source="Bloomberg",
                published_at=now - timedelta(hours=2),
            ),
        ]

    def canned_symbol_news(self, symbol: str) -> list[NewsArticle]:
        return [
            NewsArticle(
                title=f"{symbol} Reports Strong Quarterly Results",
                description=f"{symbol} exceeded analyst expectations with robust revenue "
                            f"growth and improved margins.",
                source="Reuters",
                published_at=self.clock(),
            ),
        ]

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
