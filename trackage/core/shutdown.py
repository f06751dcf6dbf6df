"""
Cooperative shutdown signal shared by the long-running workers.
"""
import asyncio
import logging

logger = logging.getLogger(__name__)

# Seconds between two checks of the token while a worker sleeps
SLEEP_GRANULARITY_SECONDS = 1.0


class ShutdownToken:
    """
    Cancellation token passed to each worker.

    Workers check `is_set` at the top of every cycle and call `sleep()`
    between cycles; `sleep()` looks at the token once per second, so a
    worker notices shutdown within one in-flight cycle plus one second.
    """

    def __init__(self):
        self._event = asyncio.Event()

    @property
    def is_set(self) -> bool:
        return self._event.is_set()

    def set(self) -> None:
        if not self._event.is_set():
            logger.info("Shutdown requested")
        self._event.set()

    async def sleep(self, seconds: float, granularity: float = SLEEP_GRANULARITY_SECONDS) -> None:
        slept = 0.0
        while slept < seconds and not self.is_set:
            step = min(granularity, seconds - slept)
            await asyncio.sleep(step)
            slept += step
