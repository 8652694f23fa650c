"""Twelve Data quote and statistics provider."""

from typing import Any, Optional

from ..data.models import MarketStats
from ..errors import BadResponseShapeError, ProviderFailure, RateLimitedError
from .base import HttpQuoteProvider


class TwelveDataProvider(HttpQuoteProvider):
    """
    Primary quote source.

    Twelve Data reports most errors in-band with HTTP 200:
    {"code": 429, "message": "...", "status": "error"}.
    """

    def __init__(self, config: dict[str, Any], api_key: str, **kwargs):
        super().__init__(
            "twelve_data",
            config,
            base_url=config.get("twelve_data_url", "https://api.twelvedata.com"),
            api_key=api_key,
            **kwargs,
        )

    def build_quote_request(self, symbol: str) -> tuple[str, dict[str, str]]:
        return f"{self.base_url}/quote", {"symbol": symbol, "apikey": self.api_key}

    def check_payload(self, payload: Any) -> None:
        if not isinstance(payload, dict):
            raise BadResponseShapeError("Payload is not an object", provider=self.name,
                                        raw_data=str(payload)[:200])

        if payload.get("status") != "error":
            return

        code = payload.get("code")
        message = payload.get("message", "unknown error")
        if code == 429 or str(code) == "429":
            raise RateLimitedError(f"Rate limited: {message}", provider=self.name)
        raise BadResponseShapeError(f"Error payload (code {code}): {message}", provider=self.name,
                                    raw_data=str(payload)[:200])

    async def fetch_market_stats(self, symbol: str) -> Optional[MarketStats]:
        """
        Fetch capitalization and ownership statistics.

        Returns None when the statistics are unavailable.
        """
        symbol = symbol.strip().upper()
        url = f"{self.base_url}/statistics"
        try:
            payload = await self.get_json(url, {"symbol": symbol, "apikey": self.api_key})
            self.check_payload(payload)
            return self.normalizer.normalize_market_stats(self.name, payload, symbol=symbol)
        except ProviderFailure as e:
            self.logger.warning("Statistics unavailable", symbol=symbol, error=str(e))
        return None
