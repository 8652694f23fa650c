"""
Tests for the reference-counted subscription registry.

The registry's timer is replaced with a ManualTimer so ticks only happen
when a test fires it; `settle` lets the event loop run until every poll
task is parked again.
"""

import asyncio

import pytest

from stockwise.errors import CallbackFailure
from stockwise.feed import SubscriptionRegistry


async def settle(rounds: int = 10) -> None:
    """Let every ready task run until it blocks again."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeChain:
    """Quote source that counts calls and can hold fetches in flight."""

    def __init__(self, quote_factory, gate: asyncio.Event = None):
        self.quote_factory = quote_factory
        self.gate = gate
        self.calls = []
        self.fail_next = False

    async def get_quote(self, symbol):
        self.calls.append(symbol)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_next:
            self.fail_next = False
            raise RuntimeError("source exploded")
        return self.quote_factory(symbol, price=100.0 + len(self.calls))


def make_registry(chain, timer, **kwargs) -> SubscriptionRegistry:
    return SubscriptionRegistry(chain, interval_seconds=5.0, sleep=timer.sleep, **kwargs)


class TestSinglePollTask:
    """One poll task per symbol regardless of subscriber count."""

    @pytest.mark.asyncio
    async def test_two_subscribers_share_one_task(self, quote_factory, manual_timer):
        """Instrumentation counter, not timer count."""
        timer = manual_timer
        registry = make_registry(FakeChain(quote_factory), timer)

        registry.subscribe("AAPL", lambda q: None)
        registry.subscribe("aapl", lambda q: None)

        assert registry.tasks_created == 1
        assert registry.active_task_count == 1
        assert registry.subscriber_count("AAPL") == 2
        await registry.aclose()

    @pytest.mark.asyncio
    async def test_fan_out_delivers_same_instance(self, quote_factory, manual_timer):
        """Every subscriber gets the identical Quote object."""
        timer = manual_timer
        registry = make_registry(FakeChain(quote_factory), timer)
        first, second = [], []

        registry.subscribe("AAPL", first.append)
        registry.subscribe("AAPL", second.append)
        await settle()

        assert len(first) == len(second) == 1
        assert first[0] is second[0]
        await registry.aclose()

    @pytest.mark.asyncio
    async def test_first_tick_is_immediate(self, quote_factory, manual_timer):
        """The first fetch does not wait for an interval."""
        timer = manual_timer
        chain = FakeChain(quote_factory)
        registry = make_registry(chain, timer)
        received = []

        registry.subscribe("AAPL", received.append)
        await settle()

        assert chain.calls == ["AAPL"]
        assert len(received) == 1

        timer.fire()
        await settle()
        assert len(received) == 2
        await registry.aclose()

    @pytest.mark.asyncio
    async def test_first_tick_can_wait_one_interval(self, quote_factory, manual_timer):
        """immediate_first_tick=False waits before the first fetch."""
        timer = manual_timer
        chain = FakeChain(quote_factory)
        registry = make_registry(chain, timer, immediate_first_tick=False)

        registry.subscribe("AAPL", lambda q: None)
        await settle()
        assert chain.calls == []

        timer.fire()
        await settle()
        assert chain.calls == ["AAPL"]
        await registry.aclose()

    @pytest.mark.asyncio
    async def test_symbols_are_independent(self, quote_factory, manual_timer):
        """Each symbol has its own task."""
        timer = manual_timer
        registry = make_registry(FakeChain(quote_factory), timer)

        registry.subscribe("AAPL", lambda q: None)
        registry.subscribe("MSFT", lambda q: None)

        assert registry.tasks_created == 2
        assert registry.active_symbols == ["AAPL", "MSFT"]
        await registry.aclose()


class TestUnsubscribe:
    """Reference counting and teardown."""

    @pytest.mark.asyncio
    async def test_last_unsubscribe_stops_ticks(self, quote_factory, manual_timer):
        """No fetches after the last subscriber leaves."""
        timer = manual_timer
        chain = FakeChain(quote_factory)
        registry = make_registry(chain, timer)

        first = registry.subscribe("AAPL", lambda q: None)
        second = registry.subscribe("AAPL", lambda q: None)
        await settle()

        first.unsubscribe()
        assert registry.has_task("AAPL")
        second.unsubscribe()
        assert not registry.has_task("AAPL")

        calls_before = len(chain.calls)
        timer.fire()
        await settle()
        assert len(chain.calls) == calls_before

    @pytest.mark.asyncio
    async def test_resubscribe_starts_fresh_task(self, quote_factory, manual_timer):
        """0 -> 1 after teardown creates a new task."""
        timer = manual_timer
        registry = make_registry(FakeChain(quote_factory), timer)

        handle = registry.subscribe("AAPL", lambda q: None)
        await settle()
        old_task = registry.get_task("AAPL")
        handle.unsubscribe()

        received = []
        registry.subscribe("AAPL", received.append)
        await settle()

        assert registry.tasks_created == 2
        assert registry.get_task("AAPL") is not old_task
        assert old_task.closed
        assert len(received) == 1
        await registry.aclose()

    @pytest.mark.asyncio
    async def test_unsubscribe_is_idempotent(self, quote_factory, manual_timer):
        """Second call is a no-op."""
        timer = manual_timer
        registry = make_registry(FakeChain(quote_factory), timer)

        keep = registry.subscribe("AAPL", lambda q: None)
        handle = registry.subscribe("AAPL", lambda q: None)
        handle.unsubscribe()
        handle.unsubscribe()
        registry.unsubscribe(handle)

        assert not handle.active
        assert keep.active
        assert registry.subscriber_count("AAPL") == 1
        await registry.aclose()

    @pytest.mark.asyncio
    async def test_unsubscribe_removes_only_that_callback(self, quote_factory, manual_timer):
        """The same function subscribed twice is two subscriptions."""
        timer = manual_timer
        registry = make_registry(FakeChain(quote_factory), timer)
        received = []

        registry.subscribe("AAPL", received.append)
        handle = registry.subscribe("AAPL", received.append)
        handle.unsubscribe()
        await settle()

        assert len(received) == 1
        await registry.aclose()

    @pytest.mark.asyncio
    async def test_unsubscribe_during_inflight_fetch(self, quote_factory, manual_timer):
        """The in-flight result is not delivered and no new timer is scheduled."""
        timer = manual_timer
        gate = asyncio.Event()
        chain = FakeChain(quote_factory, gate=gate)
        registry = make_registry(chain, timer)
        received = []

        handle = registry.subscribe("AAPL", received.append)
        await settle()
        assert chain.calls == ["AAPL"]

        handle.unsubscribe()
        gate.set()
        await settle()

        assert received == []
        assert registry.ticks == 0
        assert timer.waiters == []

    @pytest.mark.asyncio
    async def test_subscribe_during_teardown_is_not_lost(self, quote_factory, manual_timer):
        """A subscribe right after the last unsubscribe gets its own task."""
        timer = manual_timer
        gate = asyncio.Event()
        chain = FakeChain(quote_factory, gate=gate)
        registry = make_registry(chain, timer)

        old = registry.subscribe("AAPL", lambda q: None)
        await settle()
        old.unsubscribe()

        received = []
        registry.subscribe("AAPL", received.append)
        gate.set()
        await settle()

        assert registry.has_task("AAPL")
        assert len(received) == 1
        await registry.aclose()


class TestCallbackIsolation:
    """Failing callbacks never break delivery."""

    @pytest.mark.asyncio
    async def test_throwing_callback_does_not_block_others(self, quote_factory, manual_timer):
        """Remaining callbacks still receive the tick."""
        timer = manual_timer
        registry = make_registry(FakeChain(quote_factory), timer)
        received = []

        def explode(quote):
            raise ValueError("bad handler")

        registry.subscribe("AAPL", explode)
        registry.subscribe("AAPL", received.append)
        await settle()

        assert len(received) == 1
        assert registry.callback_failure_count == 1
        failure = registry.callback_failures[0]
        assert isinstance(failure, CallbackFailure)
        assert isinstance(failure.cause, ValueError)
        assert failure.symbol == "AAPL"

        timer.fire()
        await settle()
        assert len(received) == 2
        assert registry.callback_failure_count == 2
        await registry.aclose()

    @pytest.mark.asyncio
    async def test_callback_unsubscribing_peer_mid_distribution(self, quote_factory, manual_timer):
        """A handle deactivated during fan-out is skipped for that tick."""
        timer = manual_timer
        registry = make_registry(FakeChain(quote_factory), timer)
        received = []
        handles = {}

        handles["first"] = registry.subscribe("AAPL", lambda q: handles["second"].unsubscribe())
        handles["second"] = registry.subscribe("AAPL", received.append)
        await settle()

        assert received == []
        await registry.aclose()

    @pytest.mark.asyncio
    async def test_subscriber_added_mid_distribution_waits_for_next_tick(self, quote_factory, manual_timer):
        """Joining during fan-out means joining after it."""
        timer = manual_timer
        registry = make_registry(FakeChain(quote_factory), timer)
        late = []
        added = []

        def add_subscriber(quote):
            if not added:
                added.append(registry.subscribe("AAPL", late.append))

        registry.subscribe("AAPL", add_subscriber)
        await settle()
        assert late == []

        timer.fire()
        await settle()
        assert len(late) == 1
        await registry.aclose()

    @pytest.mark.asyncio
    async def test_source_error_skips_tick(self, quote_factory, manual_timer):
        """A raising source costs one tick, not the task."""
        timer = manual_timer
        chain = FakeChain(quote_factory)
        chain.fail_next = True
        registry = make_registry(chain, timer)
        received = []

        registry.subscribe("AAPL", received.append)
        await settle()
        assert received == []
        assert registry.has_task("AAPL")

        timer.fire()
        await settle()
        assert len(received) == 1
        await registry.aclose()


class TestRegistryValidation:
    """Argument checks and shutdown."""

    def test_non_callable_rejected(self, quote_factory):
        registry = SubscriptionRegistry(FakeChain(quote_factory))
        with pytest.raises(TypeError):
            registry.subscribe("AAPL", None)

    @pytest.mark.asyncio
    async def test_empty_symbol_rejected(self, quote_factory):
        registry = SubscriptionRegistry(FakeChain(quote_factory))
        with pytest.raises(ValueError):
            registry.subscribe("  ", lambda q: None)

    def test_interval_must_be_positive(self, quote_factory):
        with pytest.raises(ValueError):
            SubscriptionRegistry(FakeChain(quote_factory), interval_seconds=0)

    @pytest.mark.asyncio
    async def test_aclose_cancels_everything(self, quote_factory, manual_timer):
        """All tasks end and handles are deactivated."""
        timer = manual_timer
        registry = make_registry(FakeChain(quote_factory), timer)
        handles = [registry.subscribe(s, lambda q: None) for s in ("AAPL", "MSFT")]
        await settle()

        await registry.aclose()

        assert registry.active_task_count == 0
        assert not any(h.active for h in handles)
        assert registry.get_stats()["tasks_created"] == 2
