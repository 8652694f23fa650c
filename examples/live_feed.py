#!/usr/bin/env python3
"""
Live Feed Example - Stockwise Market Data Layer

This script subscribes to a few symbols and prints each quote as it
arrives, then shows portfolio valuation and the latest headlines. It shows
how to:
- Build the service from configuration and STOCKWISE_* API keys
- Subscribe and unsubscribe quote callbacks
- Value portfolio positions against fresh quotes
- Fetch sentiment-tagged news

With the default "demo" keys the real providers are quickly rate limited
and the feed continues on synthetic quotes.

Run: python examples/live_feed.py [SYMBOL ...]
"""

import asyncio
import sys

from stockwise.data.models import Quote
from stockwise.logging.config import configure_logging
from stockwise.service import MarketDataService


def print_quote(quote: Quote) -> None:
    arrow = "▲" if quote.change >= 0 else "▼"
    print(f"  {quote.symbol:<6} {quote.price:>10.2f} {arrow} {quote.change:+.2f} "
          f"({quote.change_percent:+.2f}%)  [{quote.provider}]")


async def run(symbols: list[str], seconds: float = 12.0) -> None:
    async with MarketDataService.from_config(overrides={"polling": {"interval_seconds": 3.0}}) as service:
        print(f"📈 Subscribing to {', '.join(symbols)} for {seconds:.0f}s")
        handles = [service.subscribe(symbol, print_quote) for symbol in symbols]
        await asyncio.sleep(seconds)
        for handle in handles:
            handle.unsubscribe()

        print("\n💼 Portfolio")
        if not service.ledger.positions():
            service.ledger.open(symbols[0], 10, 100.0)
        totals = await service.portfolio_totals()
        for valuation in totals.valuations:
            percent = "n/a" if valuation.profit_loss_percent is None else f"{valuation.profit_loss_percent:+.2f}%"
            print(f"  {valuation.symbol:<6} value {valuation.market_value:>10.2f}  P/L {valuation.profit_loss:+.2f} ({percent})")

        print("\n📰 Headlines")
        for article in (await service.financial_news())[:5]:
            print(f"  [{article.sentiment:<7}] {article.title} ({service.news.time_ago(article)})")

        print("\n📊 Stats")
        print(f"  {service.get_stats()}")


def main() -> None:
    configure_logging(level="WARNING")
    symbols = [s.upper() for s in sys.argv[1:]] or ["AAPL", "MSFT", "TSLA"]
    asyncio.run(run(symbols))


if __name__ == "__main__":
    main()
