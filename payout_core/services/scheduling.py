"""Per-key debounce timers for remote lookups.

Each key (a line item, the Tag Pay draft, a customer's record refresh) owns at
most one timer. Rescheduling a key cancels its pending timer, so a burst of
edits fires one call after the quiet period.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Hashable, Set

logger = logging.getLogger(__name__)

Job = Callable[[], Awaitable[None]]


class KeyedDebouncer:
    """Owns one cancellable timer (and the call it starts) per key."""

    def __init__(self, delay_ms: int, cancel_in_flight: bool = True):
        self.delay = delay_ms / 1000
        self.cancel_in_flight = cancel_in_flight
        self._timers: Dict[Hashable, asyncio.Task] = {}
        self._in_flight: Dict[Hashable, asyncio.Task] = {}
        # Superseded calls left running when cancel_in_flight is off
        self._detached: Set[asyncio.Task] = set()

    def schedule(self, key: Hashable, job: Job) -> None:
        """(Re)start the key's timer; `job` runs once the delay elapses undisturbed."""
        self.cancel(key)
        loop = asyncio.get_running_loop()
        self._timers[key] = loop.create_task(self._fire_after_delay(key, job))
        logger.debug(f"Debounce scheduled for {key} ({self.delay * 1000:.0f}ms)")

    async def _fire_after_delay(self, key: Hashable, job: Job) -> None:
        await asyncio.sleep(self.delay)

        task = asyncio.current_task()
        if self._timers.get(key) is task:
            del self._timers[key]
        self._in_flight[key] = task
        try:
            await job()
        finally:
            if self._in_flight.get(key) is task:
                del self._in_flight[key]
            self._detached.discard(task)

    def cancel(self, key: Hashable) -> None:
        """Cancel the key's pending timer and supersede its in-flight call."""
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()

        in_flight = self._in_flight.pop(key, None)
        if in_flight is not None and not in_flight.done():
            if self.cancel_in_flight:
                in_flight.cancel()
            else:
                self._detached.add(in_flight)

    def cancel_all(self) -> None:
        for key in list(self._timers) + list(self._in_flight):
            self.cancel(key)
        for task in list(self._detached):
            task.cancel()

    def is_pending(self, key: Hashable) -> bool:
        """Whether the key's timer is still counting down."""
        return key in self._timers

    def is_in_flight(self, key: Hashable) -> bool:
        """Whether the key's current (non-superseded) call is running."""
        return key in self._in_flight

    @property
    def active_count(self) -> int:
        return len(self._timers) + len(self._in_flight) + len(self._detached)

    async def wait_idle(self) -> None:
        """Wait until no timer is pending and no call (current or superseded) is running."""
        while True:
            tasks = [*self._timers.values(), *self._in_flight.values(), *self._detached]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)
