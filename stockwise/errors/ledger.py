"""
Portfolio ledger input errors.

These are surfaced synchronously to the caller and never retried.
"""

from typing import Any, Optional


class LedgerError(Exception):
    """Base class for rejected ledger operations."""

    def __init__(self, message: str, symbol: Optional[str] = None,
                 context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.symbol = symbol
        self.context = context or {}
        self.recoverable = False


class InvalidQuantity(LedgerError):
    """Share count is zero, negative or not a finite number."""

    def __init__(self, message: str, shares: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.shares = shares


class InvalidPrice(LedgerError):
    """Execution price is negative or not a finite number."""

    def __init__(self, message: str, price: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.price = price


class PositionNotFound(LedgerError):
    """No open position exists for the symbol."""


class QuoteMismatch(LedgerError):
    """Quote supplied for a valuation belongs to a different symbol."""

    def __init__(self, message: str, quote_symbol: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.quote_symbol = quote_symbol
