"""
Error classification for the market data layer.

Provider failures are absorbed by the data source chain, callback failures
by the subscription registry; only ledger input errors reach the caller.
"""

from .ledger import (
    LedgerError,
    InvalidQuantity,
    InvalidPrice,
    PositionNotFound,
    QuoteMismatch,
)
from .provider_failures import (
    ProviderFailure,
    RateLimitedError,
    BadResponseShapeError,
    NetworkFailureError,
    MalformedResponse,
)
from .system_failures import (
    CallbackFailure,
    PersistenceError,
)

__all__ = [
    # Provider failures
    "ProviderFailure",
    "RateLimitedError",
    "BadResponseShapeError",
    "NetworkFailureError",
    "MalformedResponse",
    # Ledger errors
    "LedgerError",
    "InvalidQuantity",
    "InvalidPrice",
    "PositionNotFound",
    "QuoteMismatch",
    # Isolated failures
    "CallbackFailure",
    "PersistenceError",
]
