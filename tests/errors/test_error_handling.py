"""
Error taxonomy tests.

Covers the provider failure hierarchy, ledger errors and the isolated
system failures, plus how each is classified by its consumer.
"""

import pytest

from stockwise.data.models import FetchOutcome, FetchResult
from stockwise.errors import (
    BadResponseShapeError,
    CallbackFailure,
    InvalidPrice,
    InvalidQuantity,
    LedgerError,
    MalformedResponse,
    NetworkFailureError,
    PersistenceError,
    PositionNotFound,
    ProviderFailure,
    QuoteMismatch,
    RateLimitedError,
)


class TestProviderFailures:
    """Test provider failure hierarchy."""

    def test_provider_failure_hierarchy(self):
        """All provider failures are recoverable ProviderFailures."""
        base = ProviderFailure("base error")
        assert base.recoverable is True
        assert base.context == {}
        assert base.provider is None

        rate_limited = RateLimitedError("quota", provider="twelve_data", retry_after=60)
        assert isinstance(rate_limited, ProviderFailure)
        assert rate_limited.retry_after == 60
        assert rate_limited.provider == "twelve_data"

        network = NetworkFailureError("down", status_code=502)
        assert isinstance(network, ProviderFailure)
        assert network.status_code == 502

        shape = BadResponseShapeError("garbage", raw_data="<html>")
        assert shape.raw_data == "<html>"

    def test_malformed_response_is_bad_shape(self):
        """Normalizer errors classify like a bad payload."""
        error = MalformedResponse("missing price", missing_fields=["price"], field="price",
                                  provider="alpha_vantage", context={"symbol": "MSFT"})
        assert isinstance(error, BadResponseShapeError)
        assert error.missing_fields == ["price"]
        assert error.context == {"symbol": "MSFT"}
        assert error.recoverable is True

    @pytest.mark.parametrize("error, outcome", [
        (RateLimitedError("x"), FetchOutcome.RATE_LIMITED),
        (BadResponseShapeError("x"), FetchOutcome.BAD_RESPONSE_SHAPE),
        (MalformedResponse("x"), FetchOutcome.BAD_RESPONSE_SHAPE),
        (NetworkFailureError("x", status_code=500), FetchOutcome.NETWORK_FAILURE),
        (ProviderFailure("x"), FetchOutcome.NETWORK_FAILURE),
    ])
    def test_fetch_result_classification(self, error, outcome):
        result = FetchResult.from_failure("p", error)
        assert result.outcome is outcome
        assert result.error is error
        assert not result.success

    def test_fetch_result_keeps_status_code(self):
        result = FetchResult.from_failure("p", NetworkFailureError("x", status_code=503))
        assert result.status_code == 503


class TestLedgerErrors:
    """Test ledger errors surface to callers."""

    def test_ledger_errors_not_recoverable(self):
        for error in (InvalidQuantity("bad", shares=-1), InvalidPrice("bad", price=-1),
                      PositionNotFound("gone", symbol="AAPL"), QuoteMismatch("x", quote_symbol="MSFT")):
            assert isinstance(error, LedgerError)
            assert error.recoverable is False

    def test_error_attributes(self):
        assert InvalidQuantity("bad", shares=0, symbol="AAPL").shares == 0
        assert InvalidPrice("bad", price=-2).price == -2
        assert PositionNotFound("gone", symbol="AAPL").symbol == "AAPL"


class TestSystemFailures:
    """Test isolated system failures."""

    def test_callback_failure(self):
        cause = ZeroDivisionError("boom")
        failure = CallbackFailure("callback raised", symbol="AAPL", callback_name="on_quote",
                                  cause=cause, context={"handle_id": 3})
        assert failure.cause is cause
        assert failure.recoverable is True
        assert failure.context["handle_id"] == 3

    def test_persistence_error(self):
        error = PersistenceError("disk full", operation="write", target="/tmp/x.json")
        assert error.recoverable is False
        assert error.target == "/tmp/x.json"
