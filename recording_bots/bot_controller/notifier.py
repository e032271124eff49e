import asyncio
import logging

from recording_bots.models import EventCode

logger = logging.getLogger(__name__)


async def log_event(code, data=None):
    logger.info(f"Bot event {code}: {data}")


class EventNotifier:
    """Delivers events to the external on_event callback.

    State transitions and participant events are awaited so the receiver sees them in order.
    LOG events are fire-and-forget; drain() waits for the ones still in flight.
    """

    def __init__(self, on_event=None):
        self.on_event = on_event or log_event
        self.pending_log_tasks = set()

    async def emit(self, code, data=None):
        try:
            await self.on_event(code, data)
        except Exception as e:
            logger.info(f"Error delivering {code} event: {e}")

    def log(self, message, **data):
        task = asyncio.ensure_future(self.emit(EventCode.LOG, {"message": message, **data}))
        self.pending_log_tasks.add(task)
        task.add_done_callback(self.pending_log_tasks.discard)

    async def drain(self):
        if self.pending_log_tasks:
            await asyncio.gather(*self.pending_log_tasks, return_exceptions=True)
