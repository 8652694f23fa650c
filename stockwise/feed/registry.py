"""
Reference-counted subscription registry for live quotes.

Lifecycle per symbol:
    NoTask --(first subscribe)--> TaskRunning --(last unsubscribe)--> NoTask

While a symbol's poll task runs, each tick asks the data source chain for
one quote and hands that same Quote instance to every subscriber registered
when distribution starts. The first tick runs immediately on task start;
later ticks follow `interval_seconds` after the previous fan-out completes,
so ticks for one symbol never overlap.

All state is mutated on the event loop thread. Unsubscribing the last
subscriber removes the poll task from the registry and cancels it in the
same synchronous step, so a subscribe that follows always starts a fresh
task and a torn-down task can neither deliver nor reschedule.
"""

import asyncio
import itertools
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Protocol

from ..data.models import Quote
from ..errors import CallbackFailure
from ..logging.config import get_feed_logger, log_subscription_change

logger = get_feed_logger(__name__)

QuoteCallback = Callable[[Quote], None]
SleepFactory = Callable[[float], Awaitable[Any]]


class QuoteSource(Protocol):
    async def get_quote(self, symbol: str) -> Quote: ...


class SubscriptionHandle:
    """Cancellation token returned by `SubscriptionRegistry.subscribe`."""

    def __init__(self, registry: "SubscriptionRegistry", symbol: str,
                 callback: QuoteCallback, handle_id: int):
        self._registry = registry
        self.symbol = symbol
        self.callback = callback
        self.handle_id = handle_id
        self.active = True

    def unsubscribe(self) -> None:
        """Stop deliveries to this callback. Safe to call more than once."""
        self._registry.unsubscribe(self)

    def __repr__(self) -> str:
        state = "active" if self.active else "closed"
        return f"<SubscriptionHandle {self.symbol}#{self.handle_id} {state}>"


@dataclass
class PollTask:
    """One symbol's recurring fetch-and-fan-out unit of work."""
    symbol: str
    subscribers: dict[int, SubscriptionHandle] = field(default_factory=dict)
    task: Optional[asyncio.Task] = None
    closed: bool = False
    ticks: int = 0

    @property
    def ref_count(self) -> int:
        return len(self.subscribers)


class SubscriptionRegistry:
    """
    Symbol -> subscribers map with one poll task per subscribed symbol.

    Args:
        source: Anything with `async get_quote(symbol) -> Quote`, normally a
            DataSourceChain
        interval_seconds: Delay between the end of one fan-out and the next fetch
        sleep: Timer factory awaited between ticks, `asyncio.sleep` by default
        immediate_first_tick: Fetch as soon as the task starts instead of
            waiting one interval first
        max_recorded_failures: How many recent CallbackFailure records to keep
    """

    def __init__(self,
                 source: QuoteSource,
                 interval_seconds: float = 5.0,
                 sleep: SleepFactory = asyncio.sleep,
                 immediate_first_tick: bool = True,
                 max_recorded_failures: int = 100):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")

        self.source = source
        self.interval_seconds = interval_seconds
        self.sleep = sleep
        self.immediate_first_tick = immediate_first_tick

        self._tasks: dict[str, PollTask] = {}
        self._handle_ids = itertools.count(1)

        # Instrumentation
        self.tasks_created = 0
        self.ticks = 0
        self.callback_failure_count = 0
        self.callback_failures: deque = deque(maxlen=max_recorded_failures)

    # ------------------------------------------------------------------
    # Subscription management
    # ------------------------------------------------------------------

    def subscribe(self, symbol: str, callback: QuoteCallback) -> SubscriptionHandle:
        """
        Register `callback` for quotes of `symbol`.

        Must be called from a running event loop; the first subscription
        for a symbol starts its poll task.
        """
        if not callable(callback):
            raise TypeError("callback must be callable")

        symbol = symbol.strip().upper()
        if not symbol:
            raise ValueError("symbol is required")

        poll_task = self._tasks.get(symbol)
        if poll_task is None:
            poll_task = self._start_task(symbol)

        handle = SubscriptionHandle(self, symbol, callback, next(self._handle_ids))
        poll_task.subscribers[handle.handle_id] = handle

        log_subscription_change(logger, symbol, "subscribe", poll_task.ref_count)
        return handle

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Remove exactly this subscription; a no-op if already removed."""
        if not handle.active:
            return
        handle.active = False

        poll_task = self._tasks.get(handle.symbol)
        if poll_task is None or poll_task.subscribers.pop(handle.handle_id, None) is None:
            return

        log_subscription_change(logger, handle.symbol, "unsubscribe", poll_task.ref_count)

        if poll_task.ref_count == 0:
            self._stop_task(poll_task)

    def subscriber_count(self, symbol: str) -> int:
        poll_task = self._tasks.get(symbol.strip().upper())
        return poll_task.ref_count if poll_task else 0

    def has_task(self, symbol: str) -> bool:
        return symbol.strip().upper() in self._tasks

    def get_task(self, symbol: str) -> Optional[PollTask]:
        return self._tasks.get(symbol.strip().upper())

    @property
    def active_symbols(self) -> list[str]:
        return sorted(self._tasks)

    @property
    def active_task_count(self) -> int:
        return len(self._tasks)

    # ------------------------------------------------------------------
    # Poll task lifecycle
    # ------------------------------------------------------------------

    def _start_task(self, symbol: str) -> PollTask:
        loop = asyncio.get_running_loop()
        poll_task = PollTask(symbol=symbol)
        self._tasks[symbol] = poll_task
        poll_task.task = loop.create_task(self._run(poll_task), name=f"poll:{symbol}")
        self.tasks_created += 1

        log_subscription_change(logger, symbol, "task_started", 0,
                                context={"interval_seconds": self.interval_seconds})
        return poll_task

    def _stop_task(self, poll_task: PollTask) -> None:
        poll_task.closed = True
        if self._tasks.get(poll_task.symbol) is poll_task:
            del self._tasks[poll_task.symbol]

        if poll_task.task is not None and not poll_task.task.done():
            poll_task.task.cancel()

        log_subscription_change(logger, poll_task.symbol, "task_stopped", 0,
                                context={"ticks": poll_task.ticks})

    async def _run(self, poll_task: PollTask) -> None:
        if not self.immediate_first_tick:
            await self.sleep(self.interval_seconds)

        while not poll_task.closed:
            await self._tick(poll_task)
            if poll_task.closed:
                break
            await self.sleep(self.interval_seconds)

    async def _tick(self, poll_task: PollTask) -> None:
        try:
            quote = await self.source.get_quote(poll_task.symbol)
        except Exception as e:
            logger.error(
                "Quote source raised, skipping tick",
                symbol=poll_task.symbol,
                error=str(e),
                exc_info=True,
            )
            return

        # Unsubscribed while the fetch was in flight
        if poll_task.closed:
            return

        poll_task.ticks += 1
        self.ticks += 1
        self._fan_out(poll_task, quote)

    def _fan_out(self, poll_task: PollTask, quote: Quote) -> None:
        # Subscribers added by a callback during distribution join next tick
        for handle in list(poll_task.subscribers.values()):
            if not handle.active:
                continue
            try:
                handle.callback(quote)
            except Exception as e:
                self._record_callback_failure(handle, e)

    def _record_callback_failure(self, handle: SubscriptionHandle, error: Exception) -> None:
        callback_name = getattr(handle.callback, "__qualname__", repr(handle.callback))
        failure = CallbackFailure(
            f"Subscriber callback for {handle.symbol} raised: {error}",
            symbol=handle.symbol,
            callback_name=callback_name,
            cause=error,
            context={"handle_id": handle.handle_id},
        )
        self.callback_failure_count += 1
        self.callback_failures.append(failure)

        logger.error(
            "Subscriber callback failed",
            symbol=handle.symbol,
            callback=callback_name,
            error=str(error),
            exc_info=error,
        )

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        """Deactivate every subscription and wait for all poll tasks to end."""
        poll_tasks = list(self._tasks.values())
        for poll_task in poll_tasks:
            for handle in poll_task.subscribers.values():
                handle.active = False
            poll_task.subscribers.clear()
            self._stop_task(poll_task)

        pending = [p.task for p in poll_tasks if p.task is not None]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def get_stats(self) -> dict[str, Any]:
        return {
            "active_tasks": self.active_task_count,
            "tasks_created": self.tasks_created,
            "ticks": self.ticks,
            "callback_failures": self.callback_failure_count,
            "subscribers": {symbol: task.ref_count for symbol, task in self._tasks.items()},
        }
