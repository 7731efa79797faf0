"""Deduplicating, rate limited work queue keyed by object identity.

The unit of work is an identity rather than an event, so bursts of changes to
the same object collapse into a single reconciliation. An item is handed to at
most one worker at a time: adding an item while it is being processed marks it
dirty, and it is re-delivered once the worker calls `done`.
"""

from abc import ABC, abstractmethod
import asyncio
from collections import deque
from collections.abc import Hashable
import logging
from typing import Generic, TypeVar

from .exceptions import QueueShutDownError

__all__ = [
    "RateLimiter",
    "ExponentialBackoffRateLimiter",
    "WorkQueue",
]

_LOGGER = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)

DEFAULT_BASE_DELAY = 0.005
DEFAULT_MAX_DELAY = 1000.0


class RateLimiter(ABC, Generic[K]):
    """Decides how long an item waits before it is retried."""

    @abstractmethod
    def when(self, item: K) -> float:
        """Return the delay in seconds before the item is retried."""

    @abstractmethod
    def forget(self, item: K) -> None:
        """Stop tracking an item, resetting its backoff."""

    @abstractmethod
    def num_requeues(self, item: K) -> int:
        """Return the number of times the item has been rate limited."""


class ExponentialBackoffRateLimiter(RateLimiter[K]):
    """Per item exponential backoff, capped at a maximum delay."""

    def __init__(
        self,
        base_delay: float = DEFAULT_BASE_DELAY,
        max_delay: float = DEFAULT_MAX_DELAY,
    ) -> None:
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._failures: dict[K, int] = {}

    def when(self, item: K) -> float:
        failures = self._failures.get(item, 0)
        self._failures[item] = failures + 1
        # Avoid float overflow for items failing for a very long time
        if failures > 64:
            return self._max_delay
        return min(self._base_delay * (2**failures), self._max_delay)

    def forget(self, item: K) -> None:
        self._failures.pop(item, None)

    def num_requeues(self, item: K) -> int:
        return self._failures.get(item, 0)


class WorkQueue(Generic[K]):
    """A work queue guaranteeing at most one in flight copy of each item."""

    def __init__(self, name: str, rate_limiter: RateLimiter[K] | None = None) -> None:
        """Initialize the WorkQueue."""
        self._name = name
        self._rate_limiter: RateLimiter[K] = (
            rate_limiter or ExponentialBackoffRateLimiter()
        )
        self._queue: deque[K] = deque()
        # Items that need processing, whether queued or waiting on an in flight copy
        self._dirty: set[K] = set()
        self._processing: set[K] = set()
        self._waiters: deque[asyncio.Future[None]] = deque()
        self._timers: dict[K, asyncio.TimerHandle] = {}
        self._shutting_down = False

    @property
    def name(self) -> str:
        return self._name

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    def is_idle(self) -> bool:
        """Return True if nothing is queued, in flight or waiting to be retried."""
        return not self._queue and not self._processing and not self._timers

    def add(self, item: K) -> None:
        """Mark an item as needing processing.

        Adding an item that is already queued is a no-op. Adding an item that is
        being processed defers it until the in flight copy is done.
        """
        if self._shutting_down:
            return
        if item in self._dirty:
            return
        self._dirty.add(item)
        if item in self._processing:
            return
        self._queue.append(item)
        self._wakeup_next()

    def add_after(self, item: K, delay: float) -> None:
        """Add an item once the delay has passed."""
        if self._shutting_down:
            return
        if delay <= 0:
            self.add(item)
            return
        loop = asyncio.get_running_loop()
        if (existing := self._timers.get(item)) is not None:
            if existing.when() <= loop.time() + delay:
                return
            existing.cancel()
        self._timers[item] = loop.call_later(delay, self._fire_timer, item)

    def _fire_timer(self, item: K) -> None:
        self._timers.pop(item, None)
        self.add(item)

    def add_rate_limited(self, item: K) -> None:
        """Add an item after the delay chosen by the rate limiter."""
        self.add_after(item, self._rate_limiter.when(item))

    def forget(self, item: K) -> None:
        """Reset the backoff of an item."""
        self._rate_limiter.forget(item)

    def num_requeues(self, item: K) -> int:
        return self._rate_limiter.num_requeues(item)

    async def get(self) -> K:
        """Wait for the next item to process.

        Raises:
            QueueShutDownError: Once the queue has been shut down.
        """
        while not self._queue:
            if self._shutting_down:
                raise QueueShutDownError(f"Queue {self._name} is shut down")
            waiter = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            try:
                await waiter
            except asyncio.CancelledError:
                waiter.cancel()
                if waiter in self._waiters:
                    self._waiters.remove(waiter)
                # Pass the wakeup on so another getter can take the item
                if self._queue and not waiter.cancelled():
                    self._wakeup_next()
                raise
        item = self._queue.popleft()
        self._processing.add(item)
        self._dirty.discard(item)
        return item

    def done(self, item: K) -> None:
        """Mark an item as processed, re-queueing it if it was added meanwhile."""
        self._processing.discard(item)
        if item in self._dirty and not self._shutting_down:
            self._queue.append(item)
            self._wakeup_next()

    def shut_down(self) -> None:
        """Stop handing out items.

        Queued items and pending delayed adds are dropped; items in flight may
        still be marked done.
        """
        if self._shutting_down:
            return
        _LOGGER.debug(
            "Shutting down queue %s dropping %d queued items", self._name, len(self._queue)
        )
        self._shutting_down = True
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._queue.clear()
        self._dirty.clear()
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)

    def _wakeup_next(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
