"""
System-level failures that are isolated rather than propagated.
"""

from typing import Any, Optional


class CallbackFailure(Exception):
    """A subscriber callback raised while a quote was being fanned out."""

    def __init__(self, message: str, symbol: Optional[str] = None,
                 callback_name: Optional[str] = None,
                 cause: Optional[BaseException] = None,
                 context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.symbol = symbol
        self.callback_name = callback_name
        self.cause = cause
        self.context = context or {}
        self.recoverable = True


class PersistenceError(Exception):
    """User data could not be written to the backing file."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 target: Optional[str] = None,
                 context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.operation = operation
        self.target = target
        self.context = context or {}
        self.recoverable = False
