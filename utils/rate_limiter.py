"""Single-slot pacing gate shared by outbound provider calls."""

import asyncio
import time
from typing import Awaitable, Callable

from utils.logger import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """
    Keeps at least `min_interval_s` between consecutive acquisitions.

    State is one timestamp. Without `serialize`, the read-modify-write is not
    guarded, so callers that arrive while another is suspended can observe the
    same timestamp and proceed together. With `serialize=True` an asyncio.Lock
    makes the spacing strict.
    """

    def __init__(
        self,
        min_interval_s: float = 2.0,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        serialize: bool = False,
    ):
        self.min_interval_s = min_interval_s
        self.last_call: float | None = None
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock() if serialize else None

    async def acquire(self) -> float:
        """
        Wait until the interval has elapsed, then stamp the current time.

        Returns:
            Seconds spent waiting (0.0 when no wait was needed)
        """
        if self._lock is None:
            return await self._acquire()
        async with self._lock:
            return await self._acquire()

    async def _acquire(self) -> float:
        waited = 0.0
        if self.last_call is not None:
            elapsed = self._clock() - self.last_call
            if elapsed < self.min_interval_s:
                waited = self.min_interval_s - elapsed
                logger.debug(
                    "Pacing outbound call",
                    extra={"extra_fields": {"wait_s": round(waited, 3)}},
                )
                await self._sleep(waited)
        self.last_call = self._clock()
        return waited
