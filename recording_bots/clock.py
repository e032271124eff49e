import asyncio
import time


class Clock:
    """Source of time for everything in the bot that waits or measures durations.

    Tests swap in a virtual clock so that timeouts measured in minutes run instantly.
    """

    def now(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
