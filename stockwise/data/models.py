"""
Canonical data models for normalized market data.

This module defines immutable data structures that represent clean, validated
market data after normalization from provider-specific formats.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..errors import BadResponseShapeError, ProviderFailure, RateLimitedError


@dataclass(frozen=True)
class Quote:
    """Normalized snapshot of a symbol's market data at one instant."""
    symbol: str             # Uppercase ticker
    price: float            # Last traded price
    change: float           # Absolute change vs previous close
    change_percent: float   # Percent change vs previous close
    volume: float           # Session volume
    day_high: float
    day_low: float
    year_high: float
    year_low: float
    timestamp: datetime     # UTC market timestamp
    provider: str = "unknown"

    @property
    def previous_close(self) -> float:
        """Reference price the change is measured against."""
        return self.price - self.change

    @property
    def in_day_range(self) -> bool:
        """True when day_low <= price <= day_high."""
        return self.day_low <= self.price <= self.day_high

    def to_dict(self) -> dict[str, Any]:
        """Serialize with an ISO timestamp."""
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


class FetchOutcome(str, Enum):
    """Classified outcome of a single provider fetch."""
    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    BAD_RESPONSE_SHAPE = "bad_response_shape"
    NETWORK_FAILURE = "network_failure"


@dataclass(frozen=True)
class FetchResult:
    """Result of asking one provider for a quote."""
    provider: str
    outcome: FetchOutcome
    quote: Optional[Quote] = None
    detail: Optional[str] = None
    status_code: Optional[int] = None
    error: Optional[ProviderFailure] = None

    @property
    def success(self) -> bool:
        return self.outcome is FetchOutcome.SUCCESS and self.quote is not None

    @classmethod
    def ok(cls, provider: str, quote: Quote) -> "FetchResult":
        """Create successful result."""
        return cls(provider=provider, outcome=FetchOutcome.SUCCESS, quote=quote)

    @classmethod
    def from_failure(cls, provider: str, error: ProviderFailure) -> "FetchResult":
        """Classify a provider failure into a non-success result."""
        if isinstance(error, RateLimitedError):
            outcome = FetchOutcome.RATE_LIMITED
        elif isinstance(error, BadResponseShapeError):
            outcome = FetchOutcome.BAD_RESPONSE_SHAPE
        else:
            outcome = FetchOutcome.NETWORK_FAILURE

        return cls(
            provider=provider,
            outcome=outcome,
            detail=str(error),
            status_code=getattr(error, "status_code", None),
            error=error,
        )


@dataclass(frozen=True)
class MarketStats:
    """Capitalization and ownership statistics for a symbol."""
    symbol: str
    market_cap: float
    shares_outstanding: float
    float_shares: float
    institutional_ownership: float    # Percent
    insider_ownership: float          # Percent
    provider: str = "unknown"


@dataclass(frozen=True)
class NewsArticle:
    """News item in the shape the dashboard consumes."""
    title: str
    description: str
    source: str
    published_at: Optional[datetime]
    url: str = ""
    image_url: str = ""
    sentiment: Optional[str] = None     # SentimentLabel value once scored
    symbol: Optional[str] = None        # Ticker mentioned in the text, if any

    @property
    def text(self) -> str:
        """Title and description joined, as fed to the sentiment scorer."""
        return f"{self.title} {self.description}".strip()

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["published_at"] = self.published_at.isoformat() if self.published_at else None
        return data
