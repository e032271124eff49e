import asyncio
import logging

logger = logging.getLogger(__name__)


class AudioCaptureStream:
    """Async iterator of PCM chunks fed from the websocket thread.

    Iteration ends once destroy() is called. Chunks pushed after that are dropped.
    """

    def __init__(self, loop):
        self.loop = loop
        self.queue = asyncio.Queue()
        self.destroyed = False
        self.chunks_received = 0

    def push_threadsafe(self, chunk: bytes):
        if self.destroyed:
            return
        self.loop.call_soon_threadsafe(self.push, chunk)

    def push(self, chunk: bytes):
        if self.destroyed:
            return
        self.chunks_received += 1
        self.queue.put_nowait(chunk)

    def destroy(self):
        if self.destroyed:
            logger.info("Audio capture stream already destroyed, doing nothing")
            return
        self.destroyed = True
        self.queue.put_nowait(None)
        logger.info(f"Audio capture stream destroyed after {self.chunks_received} chunks")

    def __aiter__(self):
        return self

    async def __anext__(self):
        chunk = await self.queue.get()
        if chunk is None:
            raise StopAsyncIteration
        return chunk
