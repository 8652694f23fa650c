"""Tests for the HTTP quote providers and their outcome classification."""

import httpx
import pytest

from stockwise.data.models import FetchOutcome
from stockwise.providers import AlphaVantageProvider, TwelveDataProvider
from stockwise.providers.base import request_json
from stockwise.errors import BadResponseShapeError, NetworkFailureError, RateLimitedError

PROVIDER_CONFIG = {
    "twelve_data_url": "https://td.test",
    "alpha_vantage_url": "https://av.test/query",
    "timeout_seconds": 1.0,
}


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def json_handler(payload, status_code=200, seen=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=payload)
    return handler


class TestRequestJson:
    """Test transport-level classification."""

    @pytest.mark.asyncio
    async def test_http_429_is_rate_limited(self):
        """429 carries Retry-After through."""
        def handler(request):
            return httpx.Response(429, headers={"Retry-After": "30"}, text="slow down")

        async with make_client(handler) as client:
            with pytest.raises(RateLimitedError) as exc_info:
                await request_json(client, "td", "https://td.test/quote", {})

        assert exc_info.value.retry_after == 30.0
        assert exc_info.value.provider == "td"

    @pytest.mark.asyncio
    async def test_server_error_is_network_failure(self):
        """Non-2xx other than 429."""
        async with make_client(lambda request: httpx.Response(503, text="down")) as client:
            with pytest.raises(NetworkFailureError) as exc_info:
                await request_json(client, "td", "https://td.test/quote", {})

        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_transport_error_is_network_failure(self):
        """Connection failures never escape as httpx errors."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(NetworkFailureError):
                await request_json(client, "td", "https://td.test/quote", {})

    @pytest.mark.asyncio
    async def test_timeout_is_network_failure(self):
        """Timeouts are transport failures."""
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_client(handler) as client:
            with pytest.raises(NetworkFailureError) as exc_info:
                await request_json(client, "td", "https://td.test/quote", {})

        assert "Timeout" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_non_json_body_is_bad_shape(self):
        """HTML error pages and the like."""
        async with make_client(lambda request: httpx.Response(200, text="<html>oops</html>")) as client:
            with pytest.raises(BadResponseShapeError):
                await request_json(client, "td", "https://td.test/quote", {})


class TestTwelveDataProvider:
    """Test the primary quote provider."""

    @pytest.mark.asyncio
    async def test_successful_fetch(self, twelve_data_quote_payload):
        """Request carries symbol and key; result is a normalized quote."""
        seen = []
        async with make_client(json_handler(twelve_data_quote_payload, seen=seen)) as client:
            provider = TwelveDataProvider(PROVIDER_CONFIG, "secret", client=client)
            result = await provider.fetch("aapl")

        assert result.success
        assert result.outcome is FetchOutcome.SUCCESS
        assert result.quote.symbol == "AAPL"
        assert result.quote.provider == "twelve_data"

        request = seen[0]
        assert request.url.path == "/quote"
        assert request.url.params["symbol"] == "AAPL"
        assert request.url.params["apikey"] == "secret"

    @pytest.mark.asyncio
    async def test_in_band_rate_limit(self):
        """HTTP 200 with code 429 is still a rate limit."""
        payload = {"code": 429, "message": "You have run out of API credits", "status": "error"}
        async with make_client(json_handler(payload)) as client:
            result = await TwelveDataProvider(PROVIDER_CONFIG, "k", client=client).fetch("AAPL")

        assert result.outcome is FetchOutcome.RATE_LIMITED
        assert isinstance(result.error, RateLimitedError)

    @pytest.mark.asyncio
    async def test_in_band_error_is_bad_shape(self):
        """Unknown symbol and similar error payloads."""
        payload = {"code": 404, "message": "symbol not found", "status": "error"}
        async with make_client(json_handler(payload)) as client:
            result = await TwelveDataProvider(PROVIDER_CONFIG, "k", client=client).fetch("ZZZZ")

        assert result.outcome is FetchOutcome.BAD_RESPONSE_SHAPE
        assert "symbol not found" in result.detail

    @pytest.mark.asyncio
    async def test_missing_fields_are_bad_shape(self):
        """Normalizer failures surface as BAD_RESPONSE_SHAPE with the provider set."""
        async with make_client(json_handler({"symbol": "AAPL"})) as client:
            result = await TwelveDataProvider(PROVIDER_CONFIG, "k", client=client).fetch("AAPL")

        assert result.outcome is FetchOutcome.BAD_RESPONSE_SHAPE
        assert result.error.provider == "twelve_data"

    @pytest.mark.asyncio
    async def test_http_error_status_recorded(self):
        """status_code is kept on the result."""
        async with make_client(lambda request: httpx.Response(500)) as client:
            result = await TwelveDataProvider(PROVIDER_CONFIG, "k", client=client).fetch("AAPL")

        assert result.outcome is FetchOutcome.NETWORK_FAILURE
        assert result.status_code == 500

    @pytest.mark.asyncio
    async def test_stats_counters(self, twelve_data_quote_payload):
        """Outcomes are counted per provider."""
        async with make_client(json_handler(twelve_data_quote_payload)) as client:
            provider = TwelveDataProvider(PROVIDER_CONFIG, "k", client=client)
            await provider.fetch("AAPL")
            await provider.fetch("AAPL")

        stats = provider.get_stats()
        assert stats["fetch_count"] == 2
        assert stats["outcomes"]["success"] == 2
        assert stats["success_rate"] == 1.0

        provider.reset_stats()
        assert provider.get_stats()["fetch_count"] == 0

    @pytest.mark.asyncio
    async def test_market_stats(self):
        """Statistics endpoint maps to MarketStats."""
        payload = {
            "meta": {"symbol": "AAPL"},
            "statistics": {
                "valuations_metrics": {"market_capitalization": 1000.0},
                "stock_statistics": {"shares_outstanding": 10.0, "float_shares": 9.0,
                                     "percent_held_by_institutions": 0.5,
                                     "percent_held_by_insiders": 0.01},
            },
        }
        seen = []
        async with make_client(json_handler(payload, seen=seen)) as client:
            stats = await TwelveDataProvider(PROVIDER_CONFIG, "k", client=client).fetch_market_stats("aapl")

        assert seen[0].url.path == "/statistics"
        assert stats.market_cap == 1000.0
        assert stats.institutional_ownership == pytest.approx(50.0)

    @pytest.mark.asyncio
    async def test_market_stats_unavailable(self):
        """Failures yield None instead of raising."""
        async with make_client(lambda request: httpx.Response(403)) as client:
            stats = await TwelveDataProvider(PROVIDER_CONFIG, "k", client=client).fetch_market_stats("AAPL")

        assert stats is None


class TestAlphaVantageProvider:
    """Test the secondary quote provider."""

    @pytest.mark.asyncio
    async def test_successful_fetch(self, alpha_vantage_quote_payload):
        """GLOBAL_QUOTE request and mapping."""
        seen = []
        async with make_client(json_handler(alpha_vantage_quote_payload, seen=seen)) as client:
            result = await AlphaVantageProvider(PROVIDER_CONFIG, "av-key", client=client).fetch("msft")

        assert result.success
        assert result.quote.symbol == "MSFT"
        params = seen[0].url.params
        assert params["function"] == "GLOBAL_QUOTE"
        assert params["symbol"] == "MSFT"
        assert params["apikey"] == "av-key"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["Note", "Information"])
    async def test_rate_limit_notes(self, key):
        """Quota messages arrive as HTTP 200 with a Note or Information key."""
        payload = {key: "Thank you for using Alpha Vantage! Our standard API rate limit is 25 requests per day."}
        async with make_client(json_handler(payload)) as client:
            result = await AlphaVantageProvider(PROVIDER_CONFIG, "k", client=client).fetch("MSFT")

        assert result.outcome is FetchOutcome.RATE_LIMITED

    @pytest.mark.asyncio
    async def test_error_message(self):
        """Invalid API call."""
        payload = {"Error Message": "Invalid API call."}
        async with make_client(json_handler(payload)) as client:
            result = await AlphaVantageProvider(PROVIDER_CONFIG, "k", client=client).fetch("MSFT")

        assert result.outcome is FetchOutcome.BAD_RESPONSE_SHAPE

    @pytest.mark.asyncio
    async def test_empty_global_quote(self):
        """Unknown symbols come back as an empty Global Quote."""
        async with make_client(json_handler({"Global Quote": {}})) as client:
            result = await AlphaVantageProvider(PROVIDER_CONFIG, "k", client=client).fetch("NOPE")

        assert result.outcome is FetchOutcome.BAD_RESPONSE_SHAPE


class TestClientOwnership:
    """Test HTTP client lifecycle."""

    @pytest.mark.asyncio
    async def test_shared_client_not_closed(self):
        """A client passed in belongs to the caller."""
        async with make_client(json_handler({})) as client:
            provider = TwelveDataProvider(PROVIDER_CONFIG, "k", client=client)
            await provider.aclose()
            assert not client.is_closed

    @pytest.mark.asyncio
    async def test_own_client_closed(self):
        """A lazily created client is closed with the provider."""
        provider = TwelveDataProvider(PROVIDER_CONFIG, "k")
        client = provider.client
        await provider.aclose()
        assert client.is_closed
