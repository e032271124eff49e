import asyncio
import logging

logger = logging.getLogger(__name__)


class PeriodicTimer:
    """Runs `callback` every `interval_seconds` on a single asyncio task.

    The next interval only starts once the previous tick has returned, so ticks never overlap.
    A tick that raises is logged and the timer keeps going.
    """

    def __init__(self, name, interval_seconds, callback, clock):
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        self.name = name
        self.interval_seconds = interval_seconds
        self.callback = callback
        self.clock = clock
        self.task = None
        self.cleared = False
        self.tick_count = 0

    @property
    def is_set(self):
        return self.task is not None and not self.cleared

    def start(self):
        if self.task is not None:
            raise RuntimeError(f"Timer {self.name} was already started")
        self.task = asyncio.create_task(self.run(), name=f"timer:{self.name}")

    async def run(self):
        while True:
            await self.clock.sleep(self.interval_seconds)
            self.tick_count += 1
            try:
                await self.callback()
            except Exception as e:
                logger.info(f"Error in {self.name} timer tick {self.tick_count}: {e}")

    def clear(self):
        """Cancels the timer. Returns False if it was never started or already cleared."""
        if self.task is None or self.cleared:
            logger.info(f"Timer {self.name} is not set, nothing to clear")
            return False
        self.cleared = True
        self.task.cancel()
        logger.info(f"Cleared {self.name} timer after {self.tick_count} ticks")
        return True
