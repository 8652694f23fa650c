"""
Provider payload normalization into canonical records.

Each upstream provider names its fields differently and nests them at
different depths. A per-provider field-mapping table drives the conversion,
so adding a provider means adding a table entry, not a new code path.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union

import structlog

from ..errors import MalformedResponse
from ..utils.time import ensure_timestamp, parse_timestamp, utc_now
from .models import MarketStats, NewsArticle, Quote
from .parsers import ParseError, first_present, parse_number, parse_percent, parse_volume

logger = structlog.get_logger(__name__)

FieldPath = Union[str, tuple[str, ...], None]


@dataclass(frozen=True)
class QuoteFieldMap:
    """Where a provider keeps each quote field; tuples are ordered candidates."""
    price: FieldPath
    change: FieldPath
    change_percent: FieldPath = None
    volume: FieldPath = None
    day_high: FieldPath = None
    day_low: FieldPath = None
    year_high: FieldPath = None
    year_low: FieldPath = None
    symbol: FieldPath = None
    timestamp: FieldPath = None
    root: Optional[str] = None          # Key of the nested quote object


@dataclass(frozen=True)
class StatsFieldMap:
    """Where a provider keeps capitalization and ownership statistics."""
    root: str
    market_cap: FieldPath
    shares_outstanding: FieldPath
    float_shares: FieldPath
    institutional_ownership: FieldPath
    insider_ownership: FieldPath
    symbol: FieldPath = None
    ownership_as_fraction: bool = True


@dataclass(frozen=True)
class ArticleFieldMap:
    """Where a news provider keeps its article list and article fields."""
    articles: str
    title: FieldPath
    description: FieldPath
    source: FieldPath
    published_at: FieldPath
    url: FieldPath = "url"
    image_url: FieldPath = None


QUOTE_FIELD_MAPS: dict[str, QuoteFieldMap] = {
    "twelve_data": QuoteFieldMap(
        symbol="symbol",
        price="close",
        change="change",
        change_percent="percent_change",
        volume="volume",
        day_high="high",
        day_low="low",
        year_high="fifty_two_week.high",
        year_low="fifty_two_week.low",
        timestamp=("timestamp", "datetime"),
    ),
    "alpha_vantage": QuoteFieldMap(
        root="Global Quote",
        symbol="01. symbol",
        price="05. price",
        change="09. change",
        change_percent="10. change percent",
        volume="06. volume",
        day_high="03. high",
        day_low="04. low",
        # GLOBAL_QUOTE has no 52-week range; the session range stands in
        year_high="03. high",
        year_low="04. low",
        timestamp="07. latest trading day",
    ),
}

STATS_FIELD_MAPS: dict[str, StatsFieldMap] = {
    "twelve_data": StatsFieldMap(
        root="statistics",
        symbol="meta.symbol",
        market_cap="valuations_metrics.market_capitalization",
        shares_outstanding="stock_statistics.shares_outstanding",
        float_shares="stock_statistics.float_shares",
        institutional_ownership="stock_statistics.percent_held_by_institutions",
        insider_ownership="stock_statistics.percent_held_by_insiders",
    ),
}

ARTICLE_FIELD_MAPS: dict[str, ArticleFieldMap] = {
    "news_api": ArticleFieldMap(
        articles="articles",
        title="title",
        description="description",
        source="source.name",
        published_at="publishedAt",
        image_url="urlToImage",
    ),
    "marketaux": ArticleFieldMap(
        articles="data",
        title="title",
        description=("description", "snippet"),
        source="source",
        published_at="published_at",
        image_url="image_url",
    ),
}


class QuoteNormalizer:
    """
    Field-mapping normalizer for quote, statistics and article payloads.

    All methods are pure apart from reading the wall clock when a payload
    carries no usable timestamp.
    """

    def __init__(self,
                 quote_maps: Optional[dict[str, QuoteFieldMap]] = None,
                 stats_maps: Optional[dict[str, StatsFieldMap]] = None,
                 article_maps: Optional[dict[str, ArticleFieldMap]] = None):
        self.quote_maps = dict(QUOTE_FIELD_MAPS if quote_maps is None else quote_maps)
        self.stats_maps = dict(STATS_FIELD_MAPS if stats_maps is None else stats_maps)
        self.article_maps = dict(ARTICLE_FIELD_MAPS if article_maps is None else article_maps)

    def register_quote_map(self, provider_id: str, field_map: QuoteFieldMap) -> None:
        """Add or replace the field map for a provider."""
        self.quote_maps[provider_id] = field_map

    def normalize(self,
                  provider_id: str,
                  raw_response: Any,
                  symbol: Optional[str] = None,
                  received_at: Optional[datetime] = None) -> Quote:
        """
        Map a provider's raw quote payload into a canonical Quote.

        Args:
            provider_id: Key into the quote field-map table
            raw_response: Decoded JSON payload
            symbol: Requested ticker, used when the payload omits it
            received_at: Fallback timestamp, defaults to now

        Returns:
            Quote with day_low <= price <= day_high

        Raises:
            ValueError: No field map is registered for provider_id
            MalformedResponse: Quote object or a required field is missing,
                a present numeric field cannot be parsed, or the price is
                not positive
        """
        field_map = self.quote_maps.get(provider_id)
        if field_map is None:
            raise ValueError(f"No quote field map registered for provider '{provider_id}'")

        quote_obj = self._quote_object(provider_id, raw_response, field_map)

        try:
            price = self._required(provider_id, quote_obj, field_map.price, "price", parse_number)
            if price <= 0:
                raise ParseError(f"Non-positive price: {price!r}", field="price", value=price)
            change = self._required(provider_id, quote_obj, field_map.change, "change", parse_number)

            change_percent = self._optional(quote_obj, field_map.change_percent, "change_percent", parse_percent)
            if change_percent is None:
                change_percent = derive_change_percent(price, change)

            volume = self._optional(quote_obj, field_map.volume, "volume", parse_volume)
            day_high = self._optional(quote_obj, field_map.day_high, "day_high", parse_number)
            day_low = self._optional(quote_obj, field_map.day_low, "day_low", parse_number)
            year_high = self._optional(quote_obj, field_map.year_high, "year_high", parse_number)
            year_low = self._optional(quote_obj, field_map.year_low, "year_low", parse_number)
        except ParseError as e:
            raise MalformedResponse(
                f"{provider_id}: {e}",
                provider=provider_id,
                field=e.field,
                raw_data=str(raw_response)[:200],
            )

        _, raw_symbol = first_present(quote_obj, field_map.symbol)
        resolved_symbol = str(raw_symbol or symbol or "").strip().upper()
        if not resolved_symbol:
            raise MalformedResponse(
                f"{provider_id}: payload carries no symbol and none was requested",
                provider=provider_id,
                missing_fields=["symbol"],
            )

        # Unknown range bounds collapse onto the price
        day_high = price if day_high is None else day_high
        day_low = price if day_low is None else day_low
        if not day_low <= price <= day_high:
            logger.debug(
                "Widening reported day range to include price",
                provider=provider_id,
                symbol=resolved_symbol,
                price=price,
                day_low=day_low,
                day_high=day_high,
            )
            day_high = max(day_high, price)
            day_low = min(day_low, price)

        year_high = max(day_high if year_high is None else year_high, day_high)
        year_low = min(day_low if year_low is None else year_low, day_low)

        _, raw_ts = first_present(quote_obj, field_map.timestamp)
        timestamp = ensure_timestamp(raw_ts, fallback=received_at or utc_now())

        return Quote(
            symbol=resolved_symbol,
            price=price,
            change=change,
            change_percent=change_percent,
            volume=volume or 0.0,
            day_high=day_high,
            day_low=day_low,
            year_high=year_high,
            year_low=year_low,
            timestamp=timestamp,
            provider=provider_id,
        )

    def normalize_market_stats(self, provider_id: str, raw_response: Any,
                               symbol: Optional[str] = None) -> MarketStats:
        """Map a statistics payload into MarketStats; missing figures read as 0."""
        field_map = self.stats_maps.get(provider_id)
        if field_map is None:
            raise ValueError(f"No statistics field map registered for provider '{provider_id}'")

        if not isinstance(raw_response, dict):
            raise MalformedResponse(f"{provider_id}: statistics payload is not an object", provider=provider_id)

        stats = raw_response.get(field_map.root)
        if not isinstance(stats, dict) or not stats:
            raise MalformedResponse(
                f"{provider_id}: statistics payload has no '{field_map.root}' object",
                provider=provider_id,
                missing_fields=[field_map.root],
            )

        try:
            values = {
                name: self._optional(stats, getattr(field_map, name), name, parse_number) or 0.0
                for name in ("market_cap", "shares_outstanding", "float_shares",
                             "institutional_ownership", "insider_ownership")
            }
        except ParseError as e:
            raise MalformedResponse(f"{provider_id}: {e}", provider=provider_id, field=e.field)

        if field_map.ownership_as_fraction:
            values["institutional_ownership"] *= 100.0
            values["insider_ownership"] *= 100.0

        _, raw_symbol = first_present(raw_response, field_map.symbol)
        return MarketStats(
            symbol=str(raw_symbol or symbol or "").upper(),
            provider=provider_id,
            **values,
        )

    def normalize_articles(self, provider_id: str, raw_response: Any) -> list[NewsArticle]:
        """
        Map a news payload into NewsArticle records.

        Entries that are not objects are skipped; filtering of incomplete
        articles is left to the caller.
        """
        field_map = self.article_maps.get(provider_id)
        if field_map is None:
            raise ValueError(f"No article field map registered for provider '{provider_id}'")

        if not isinstance(raw_response, dict) or not isinstance(raw_response.get(field_map.articles), list):
            raise MalformedResponse(
                f"{provider_id}: payload has no '{field_map.articles}' list",
                provider=provider_id,
                missing_fields=[field_map.articles],
            )

        articles = []
        for item in raw_response[field_map.articles]:
            if not isinstance(item, dict):
                continue
            articles.append(NewsArticle(
                title=self._text(item, field_map.title),
                description=self._text(item, field_map.description),
                source=self._text(item, field_map.source),
                published_at=parse_timestamp(first_present(item, field_map.published_at)[1]),
                url=self._text(item, field_map.url),
                image_url=self._text(item, field_map.image_url),
            ))
        return articles

    def _quote_object(self, provider_id: str, raw_response: Any, field_map: QuoteFieldMap) -> dict[str, Any]:
        if not isinstance(raw_response, dict):
            raise MalformedResponse(
                f"{provider_id}: payload is not an object",
                provider=provider_id,
                raw_data=str(raw_response)[:200],
            )

        if field_map.root is None:
            return raw_response

        quote_obj = raw_response.get(field_map.root)
        if not isinstance(quote_obj, dict) or not quote_obj:
            raise MalformedResponse(
                f"{provider_id}: payload has no '{field_map.root}' object",
                provider=provider_id,
                missing_fields=[field_map.root],
                raw_data=str(raw_response)[:200],
            )
        return quote_obj

    @staticmethod
    def _required(provider_id: str, payload: dict[str, Any], paths: FieldPath, name: str, parser) -> float:
        path, value = first_present(payload, paths)
        if path is None:
            raise MalformedResponse(
                f"{provider_id}: required field '{name}' is missing",
                provider=provider_id,
                missing_fields=[name],
                field=name,
            )
        return parser(value, name)

    @staticmethod
    def _optional(payload: dict[str, Any], paths: FieldPath, name: str, parser) -> Optional[float]:
        path, value = first_present(payload, paths)
        if path is None:
            return None
        return parser(value, name)

    @staticmethod
    def _text(payload: dict[str, Any], paths: FieldPath) -> str:
        _, value = first_present(payload, paths)
        return "" if value is None else str(value).strip()


def derive_change_percent(price: float, change: float) -> float:
    """change / previous close * 100, 0 when the previous close is 0."""
    previous_close = price - change
    if previous_close == 0:
        return 0.0
    return change / previous_close * 100.0


_default_normalizer = QuoteNormalizer()


def normalize(provider_id: str, raw_response: Any, symbol: Optional[str] = None) -> Quote:
    """Normalize a quote payload with the built-in field maps."""
    return _default_normalizer.normalize(provider_id, raw_response, symbol=symbol)
