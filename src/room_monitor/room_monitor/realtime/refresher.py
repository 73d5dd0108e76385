from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional

from ..core.constants import DEFAULT_RELOAD_MIN_INTERVAL


class DebouncedRefresher:
    """Runs a reload at most once per ``min_interval`` and never two at once.

    ``try_run`` returns False when the call was dropped (a reload is already in
    flight, or the previous one started less than ``min_interval`` ago).
    """

    def __init__(
        self,
        min_interval: float = DEFAULT_RELOAD_MIN_INTERVAL,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.min_interval = float(min_interval)
        self._clock = clock
        self._in_flight = False
        self._last_run: Optional[float] = None
        self.runs = 0

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def ready(self) -> bool:
        if self._in_flight:
            return False
        if self._last_run is None:
            return True
        return self._clock() - self._last_run >= self.min_interval

    async def try_run(self, fn: Callable[[], Awaitable[object]]) -> bool:
        if not self.ready():
            return False

        previous = self._last_run
        self._in_flight = True
        self._last_run = self._clock()
        self.runs += 1
        try:
            await fn()
        except asyncio.CancelledError:
            # A reload that never finished does not hold the window.
            self._last_run = previous
            self.runs -= 1
            raise
        finally:
            self._in_flight = False
        return True
