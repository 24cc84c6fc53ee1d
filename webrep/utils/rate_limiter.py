"""In-flight request limiter for the embedding API."""

import asyncio
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from uuid import uuid4

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RateLimiterStats:
    """Snapshot of limiter usage."""

    current_requests: int
    max_requests: int
    utilization: float


class RateLimiter:
    """
    Bound the number of requests in flight at once.

    Callers wait for a free slot, are tracked while their request runs and
    release the slot when it completes or fails. A slot held longer than
    ``window_ms`` is considered stale and purged so a hung request cannot
    block the limiter forever.

    One instance is meant to be shared by every coroutine that calls the same
    external API; pass it explicitly to each consumer.
    """

    def __init__(
        self,
        max_requests: int,
        window_ms: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize rate limiter.

        Args:
            max_requests: Maximum concurrent requests
            window_ms: Lifetime of a tracked slot before it is purged
            clock: Monotonic clock in seconds (injectable for tests)
        """
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_ms <= 0:
            raise ValueError("window_ms must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_ms / 1000
        self._clock = clock
        self._in_flight: dict[str, float] = {}
        self._condition = asyncio.Condition()

    def _cleanup(self) -> None:
        cutoff = self._clock() - self.window_seconds
        stale = [rid for rid, started in self._in_flight.items() if started < cutoff]
        for rid in stale:
            del self._in_flight[rid]
        if stale:
            logger.warning("rate_limiter_purged_stale_requests", count=len(stale))

    def can_make_request(self) -> bool:
        """Return True if a slot is free right now."""
        self._cleanup()
        return len(self._in_flight) < self.max_requests

    async def acquire(self, request_id: str | None = None) -> str:
        """
        Wait for a free slot and track the request.

        Args:
            request_id: Optional identifier (generated when omitted)

        Returns:
            Identifier to pass to ``release``
        """
        async with self._condition:
            while not self.can_make_request():
                oldest = min(self._in_flight.values())
                timeout = max(oldest + self.window_seconds - self._clock(), 0.01)
                try:
                    await asyncio.wait_for(self._condition.wait(), timeout=timeout)
                except asyncio.TimeoutError:
                    pass

            rid = request_id or f"req_{uuid4().hex}"
            self._in_flight[rid] = self._clock()
            return rid

    async def release(self, request_id: str) -> None:
        """Stop tracking a request and wake one waiter."""
        async with self._condition:
            self._in_flight.pop(request_id, None)
            self._condition.notify()

    @asynccontextmanager
    async def slot(self, request_id: str | None = None) -> AsyncIterator[str]:
        """
        Hold a slot for the duration of the ``async with`` block.

        Example:
            ```python
            async with limiter.slot():
                response = await client.embeddings.create(...)
            ```
        """
        rid = await self.acquire(request_id)
        try:
            yield rid
        finally:
            await self.release(rid)

    def get_stats(self) -> RateLimiterStats:
        """Get current usage statistics."""
        self._cleanup()
        current = len(self._in_flight)
        return RateLimiterStats(
            current_requests=current,
            max_requests=self.max_requests,
            utilization=current / self.max_requests * 100,
        )

    def reset(self) -> None:
        """Forget all tracked requests."""
        self._in_flight.clear()
