"""Pytest configuration and shared fixtures."""

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Dict

import pytest

from stockwise.data.models import Quote


@pytest.fixture
def quote_factory() -> Callable[..., Quote]:
    """Build a valid Quote with overridable fields."""
    def make(symbol: str = "AAPL", price: float = 100.0, **overrides: Any) -> Quote:
        fields = {
            "symbol": symbol,
            "price": price,
            "change": 1.0,
            "change_percent": 1.0 / (price - 1.0) * 100.0,
            "volume": 1000.0,
            "day_high": price + 2.0,
            "day_low": price - 2.0,
            "year_high": price * 1.3,
            "year_low": price * 0.7,
            "timestamp": datetime(2024, 1, 2, 15, 30, tzinfo=timezone.utc),
            "provider": "test",
        }
        fields.update(overrides)
        return Quote(**fields)

    return make


@pytest.fixture
def twelve_data_quote_payload() -> Dict[str, Any]:
    """Twelve Data /quote response body."""
    return {
        "symbol": "AAPL",
        "name": "Apple Inc",
        "exchange": "NASDAQ",
        "datetime": "2024-01-02",
        "timestamp": 1704209400,
        "open": "187.15",
        "high": "188.44",
        "low": "183.89",
        "close": "185.64",
        "volume": "82488700",
        "previous_close": "192.53",
        "change": "-6.89",
        "percent_change": "-3.58",
        "fifty_two_week": {
            "low": "124.17",
            "high": "199.62",
        },
    }


@pytest.fixture
def alpha_vantage_quote_payload() -> Dict[str, Any]:
    """Alpha Vantage GLOBAL_QUOTE response body."""
    return {
        "Global Quote": {
            "01. symbol": "MSFT",
            "02. open": "373.8600",
            "03. high": "375.9000",
            "04. low": "366.7700",
            "05. price": "370.8700",
            "06. volume": "25258600",
            "07. latest trading day": "2024-01-02",
            "08. previous close": "376.0400",
            "09. change": "-5.1700",
            "10. change percent": "-1.3749%",
        }
    }


@pytest.fixture
def news_api_payload() -> Dict[str, Any]:
    """NewsAPI /everything response body."""
    return {
        "status": "ok",
        "totalResults": 3,
        "articles": [
            {
                "source": {"id": None, "name": "Reuters"},
                "title": "NVDA shares surge on strong data center growth",
                "description": "Nvidia beat expectations again.",
                "url": "https://example.com/nvda",
                "urlToImage": "https://example.com/nvda.jpg",
                "publishedAt": "2024-01-02T14:00:00Z",
            },
            {
                "source": {"id": None, "name": "Unknown"},
                "title": "[Removed]",
                "description": "[Removed]",
                "url": "https://removed.com",
                "publishedAt": "1970-01-01T00:00:00Z",
            },
            {
                "source": {"id": None, "name": "Bloomberg"},
                "title": "Markets wait for the Fed",
                "description": None,
                "url": "https://example.com/fed",
                "publishedAt": "2024-01-02T13:00:00Z",
            },
        ],
    }


class ManualTimer:
    """
    Stand-in for asyncio.sleep that only returns when fired.

    Each call parks the caller on a future; `fire()` releases everything
    currently parked.
    """

    def __init__(self) -> None:
        self.waiters: list = []
        self.calls = 0

    async def sleep(self, seconds: float) -> None:
        self.calls += 1
        future = asyncio.get_running_loop().create_future()
        self.waiters.append(future)
        await future

    def fire(self) -> None:
        waiters, self.waiters = self.waiters, []
        for future in waiters:
            if not future.done():
                future.set_result(None)


@pytest.fixture
def manual_timer() -> ManualTimer:
    return ManualTimer()

