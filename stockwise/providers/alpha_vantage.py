"""Alpha Vantage GLOBAL_QUOTE provider."""

from typing import Any

from ..errors import BadResponseShapeError, RateLimitedError
from .base import HttpQuoteProvider

# Alpha Vantage returns HTTP 200 with one of these keys instead of data
RATE_LIMIT_KEYS = ("Note", "Information")
ERROR_KEY = "Error Message"


class AlphaVantageProvider(HttpQuoteProvider):
    """Secondary quote source."""

    def __init__(self, config: dict[str, Any], api_key: str, **kwargs):
        super().__init__(
            "alpha_vantage",
            config,
            base_url=config.get("alpha_vantage_url", "https://www.alphavantage.co/query"),
            api_key=api_key,
            **kwargs,
        )

    def build_quote_request(self, symbol: str) -> tuple[str, dict[str, str]]:
        return self.base_url, {
            "function": "GLOBAL_QUOTE",
            "symbol": symbol,
            "apikey": self.api_key,
        }

    def check_payload(self, payload: Any) -> None:
        if not isinstance(payload, dict):
            raise BadResponseShapeError("Payload is not an object", provider=self.name,
                                        raw_data=str(payload)[:200])

        if ERROR_KEY in payload:
            raise BadResponseShapeError(f"API error: {payload[ERROR_KEY]}", provider=self.name)

        for key in RATE_LIMIT_KEYS:
            if key in payload:
                raise RateLimitedError(f"API rate limit: {payload[key]}", provider=self.name)
