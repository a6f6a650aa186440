"""Bounded in-flight request gate."""

import asyncio


class ConcurrencyGate:
    """Limits how many requests hold a transport slot at the same time.

    Backed by an asyncio.Semaphore, whose waiters are woken in FIFO order.
    """

    def __init__(self, concurrency: int):
        if concurrency < 1:
            raise ValueError("Concurrency must be at least 1")
        self.concurrency = concurrency
        self._semaphore = asyncio.Semaphore(concurrency)
        self._active = 0
        self._high_water = 0

    async def acquire(self) -> None:
        """Wait for a free slot."""
        await self._semaphore.acquire()
        self._active += 1
        self._high_water = max(self._high_water, self._active)

    def release(self) -> None:
        """Return a slot taken by acquire()."""
        if self._active <= 0:
            raise RuntimeError("ConcurrencyGate released more times than acquired")
        self._active -= 1
        self._semaphore.release()

    def active_count(self) -> int:
        return self._active

    @property
    def high_water_mark(self) -> int:
        """Largest number of simultaneous holders seen so far."""
        return self._high_water

    async def __aenter__(self) -> "ConcurrencyGate":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()
