"""
Synthetic quote generator, the terminal source of the data source chain.

Produces a per-symbol random walk around a seed price so that, while real
providers are unreachable, consecutive quotes for a symbol move smoothly
instead of jumping to unrelated random values.
"""

import random
import zlib
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

import structlog

from ..data.models import Quote
from ..utils.time import utc_now
from .base import BaseQuoteProvider

logger = structlog.get_logger(__name__)


@dataclass
class SyntheticSeries:
    """Running state of one symbol's synthetic price path."""
    seed_price: float
    trend_bias: float
    last_price: float
    open_price: float
    day_high: float
    day_low: float
    year_high: float
    year_low: float
    volume: float = 0.0


class SyntheticQuoteGenerator(BaseQuoteProvider):
    """
    Random-walk quote source that never fails.

    Each tick moves the price by `trend_bias + N(0, volatility)` (fraction of
    the last price), clamped to `max_step_pct`. Change figures are measured
    against the series' opening price, so change_percent is consistent with
    change by construction.
    """

    def __init__(self,
                 config: Optional[dict[str, Any]] = None,
                 rng: Optional[random.Random] = None,
                 clock: Callable[[], datetime] = utc_now):
        super().__init__("synthetic", config or {})
        self.trend_bias = float(self.config.get("trend_bias", 0.0))
        self.volatility = float(self.config.get("volatility", 0.002))
        self.max_step_pct = float(self.config.get("max_step_pct", 0.01))
        self.year_range_pct = float(self.config.get("year_range_pct", 0.25))
        self.min_seed_price = float(self.config.get("min_seed_price", 50.0))
        self.max_seed_price = float(self.config.get("max_seed_price", 550.0))
        self.seed_prices = {
            str(symbol).upper(): float(price)
            for symbol, price in (self.config.get("seed_prices") or {}).items()
        }

        self.rng = rng or random.Random()
        self.clock = clock
        self.series: dict[str, SyntheticSeries] = {}

    def default_seed_price(self, symbol: str) -> float:
        """Configured seed, else a stable price derived from the ticker."""
        if symbol in self.seed_prices:
            return self.seed_prices[symbol]
        span = self.max_seed_price - self.min_seed_price
        bucket = zlib.crc32(symbol.encode("utf-8")) % 10_000
        return round(self.min_seed_price + span * bucket / 10_000, 2)

    def seed(self, symbol: str, price: float, trend_bias: Optional[float] = None) -> SyntheticSeries:
        """
        Start (or restart) a symbol's series at `price`.

        Args:
            symbol: Ticker
            price: Seed price, must be positive
            trend_bias: Per-tick drift for this symbol, defaults to the
                generator-wide bias
        """
        if price <= 0:
            raise ValueError(f"Seed price must be positive, got {price}")

        symbol = symbol.strip().upper()
        band = self.year_range_pct
        series = SyntheticSeries(
            seed_price=price,
            trend_bias=self.trend_bias if trend_bias is None else trend_bias,
            last_price=price,
            open_price=price,
            day_high=price,
            day_low=price,
            year_high=round(price * (1 + band), 2),
            year_low=round(price * (1 - band), 2),
            volume=float(self.rng.randint(100_000, 1_000_000)),
        )
        self.series[symbol] = series
        return series

    def anchor(self, quote: Quote) -> None:
        """
        Continue the symbol's series from a real provider quote.

        Quotes without a positive price cannot carry a walk and are ignored.
        """
        if quote.price <= 0:
            logger.debug("Ignoring non-positive quote for anchoring",
                         symbol=quote.symbol, provider=quote.provider, price=quote.price)
            return

        series = self.series.get(quote.symbol)
        if series is None:
            series = self.seed(quote.symbol, quote.price)

        series.last_price = quote.price
        if quote.previous_close > 0:
            series.open_price = quote.previous_close
        series.day_high = quote.day_high
        series.day_low = quote.day_low
        series.year_high = max(series.year_high, quote.year_high)
        series.year_low = min(series.year_low, quote.year_low)
        series.volume = quote.volume

    def next_quote(self, symbol: str) -> Quote:
        """Advance the symbol's series by one tick."""
        symbol = symbol.strip().upper()
        series = self.series.get(symbol)
        if series is None:
            series = self.seed(symbol, self.default_seed_price(symbol))

        step = series.trend_bias + self.rng.gauss(0.0, self.volatility)
        step = max(-self.max_step_pct, min(self.max_step_pct, step))
        price = round(max(series.last_price * (1 + step), 0.01), 2)

        series.last_price = price
        series.day_high = max(series.day_high, price)
        series.day_low = min(series.day_low, price)
        series.year_high = max(series.year_high, series.day_high)
        series.year_low = min(series.year_low, series.day_low)
        series.volume += self.rng.randint(1_000, 50_000)

        change = price - series.open_price
        return Quote(
            symbol=symbol,
            price=price,
            change=change,
            change_percent=change / series.open_price * 100.0,
            volume=series.volume,
            day_high=series.day_high,
            day_low=series.day_low,
            year_high=series.year_high,
            year_low=series.year_low,
            timestamp=self.clock(),
            provider=self.name,
        )

    async def fetch_quote(self, symbol: str) -> Quote:
        return self.next_quote(symbol)
