"""
Per-key debouncer built on asyncio tasks.

`schedule(key, callback)` cancels any timer still waiting for `key` and
starts a new one; the callback runs once the key has been quiet for `delay`
seconds. A timer removes itself from the table before it fires, so later
`schedule`/`cancel` calls only ever cancel sleeping timers, never a callback
that is already running (issued requests are not cancelled).
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Hashable, List

logger = logging.getLogger(__name__)


class Debouncer:
    def __init__(self, delay: float = 1.0):
        self.delay = delay
        self._timers: Dict[Hashable, asyncio.Task] = {}

    def schedule(self, key: Hashable, callback: Callable[[], Awaitable[object]]) -> None:
        self.cancel(key)
        self._timers[key] = asyncio.create_task(self._fire_after_delay(key, callback))

    async def _fire_after_delay(self, key: Hashable, callback: Callable[[], Awaitable[object]]) -> None:
        await asyncio.sleep(self.delay)
        if self._timers.get(key) is asyncio.current_task():
            del self._timers[key]
        try:
            await callback()
        except Exception:
            # Nobody awaits this task; the failure would otherwise vanish
            logger.exception("Debounced callback for %r failed", key)

    def cancel(self, key: Hashable) -> bool:
        """Cancel the waiting timer for `key`; False if none was waiting."""
        timer = self._timers.pop(key, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def cancel_all(self) -> List[Hashable]:
        keys = list(self._timers)
        for key in keys:
            self.cancel(key)
        return keys

    def is_pending(self, key: Hashable) -> bool:
        return key in self._timers

    @property
    def pending_keys(self) -> List[Hashable]:
        return list(self._timers)
