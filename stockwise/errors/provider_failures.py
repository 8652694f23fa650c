"""
Provider failure classifications for upstream quote and news sources.

Every error in this module is recovered locally: the data source chain
treats it as a reason to fall through to the next provider.
"""

from typing import Any, Optional


class ProviderFailure(Exception):
    """Base class for failures of a single upstream data provider."""

    def __init__(self, message: str, provider: Optional[str] = None,
                 context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.provider = provider
        self.context = context or {}
        self.recoverable = True


class RateLimitedError(ProviderFailure):
    """Provider refused the request because its quota is exhausted."""

    def __init__(self, message: str, retry_after: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class BadResponseShapeError(ProviderFailure):
    """Provider answered, but not with the payload we expect."""

    def __init__(self, message: str, raw_data: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data


class NetworkFailureError(ProviderFailure):
    """Transport error, timeout or non-2xx HTTP status."""

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code


class MalformedResponse(BadResponseShapeError):
    """Normalizer could not map a raw payload onto a canonical record."""

    def __init__(self, message: str, missing_fields: Optional[list] = None,
                 field: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.missing_fields = missing_fields or []
        self.field = field
