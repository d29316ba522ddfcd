"""Semaphore-style limiter for concurrent model calls."""

import asyncio
from collections import deque
from typing import Awaitable, Callable, Iterable, TypeVar

T = TypeVar("T")
R = TypeVar("R")


class ConcurrencyLimiter:
    """Run at most ``max_concurrency`` tasks at once, queueing the rest FIFO.

    Counter and queue are only touched from the event loop thread, so no lock
    is needed.
    """

    def __init__(self, max_concurrency: int) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.max_concurrency = max_concurrency
        self._running = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def running(self) -> int:
        return self._running

    @property
    def waiting(self) -> int:
        return len(self._waiters)

    async def execute(self, task: Callable[[], Awaitable[T]]) -> T:
        """Run task when a slot frees up and return its own result or error."""
        if self._running >= self.max_concurrency:
            waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            try:
                await waiter
            except asyncio.CancelledError:
                if waiter in self._waiters:
                    self._waiters.remove(waiter)
                elif waiter.done() and not waiter.cancelled():
                    # Slot was already handed to us; pass it on.
                    self._running -= 1
                    self._release_next()
                raise
        else:
            self._running += 1

        try:
            return await task()
        finally:
            self._running -= 1
            self._release_next()

    def _release_next(self) -> None:
        while self._waiters and self._running < self.max_concurrency:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            # Slot is reserved for the waiter before it wakes up.
            self._running += 1
            waiter.set_result(None)


async def run_limited(
    items: Iterable[T],
    worker: Callable[[T], Awaitable[R]],
    max_concurrency: int = 5,
) -> list[R]:
    """Apply worker to every item with bounded concurrency, preserving order."""
    limiter = ConcurrencyLimiter(max_concurrency)
    return await asyncio.gather(
        *(limiter.execute(lambda item=item: worker(item)) for item in items)
    )
