import asyncio
import logging
import os
import wave

from recording_bots.exceptions import RecordingNotReadyError

logger = logging.getLogger(__name__)


class WavFileSink:
    def __init__(self, path, sample_rate, channels=1, sample_width=2):
        self.path = path
        self.sample_rate = sample_rate
        self.channels = channels
        self.sample_width = sample_width
        self.file = None
        self.bytes_written = 0

    @property
    def is_open(self):
        return self.file is not None

    def open(self):
        if self.file is not None:
            return
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self.file = wave.open(self.path, "wb")
        self.file.setnchannels(self.channels)
        self.file.setsampwidth(self.sample_width)
        self.file.setframerate(self.sample_rate)
        logger.info(f"Opened recording file {self.path}")

    def write(self, chunk):
        if self.file is None:
            return
        self.file.writeframes(chunk)
        self.bytes_written += len(chunk)

    def close(self):
        if self.file is None:
            return
        self.file.close()
        self.file = None
        logger.info(f"Closed recording file {self.path} after writing {self.bytes_written} bytes")


class RecordingSession:
    """Owns the audio capture stream and the sink its bytes are piped into.

    The sink is opened before the stream starts. The stream is stopped before the sink is closed.
    Both stop() and close_sink() are safe to call any number of times, started or not.
    """

    def __init__(self):
        self.stream = None
        self.sink = None
        self.pump_task = None
        self.stream_stopped = False
        self.sink_closed = False

    @property
    def released(self):
        stream_released = self.stream is None or self.stream_stopped
        sink_released = self.sink is None or self.sink_closed
        return stream_released and sink_released

    async def start(self, surface, sink):
        if self.sink is not None or self.stream is not None:
            raise RecordingNotReadyError("Recording session was already started", step="start_recording")
        if not surface.is_open():
            raise RecordingNotReadyError("Automation surface has no active session to record from", step="start_recording")

        self.sink = sink
        sink.open()

        try:
            self.stream = await surface.capture_audio_stream()
        except Exception as e:
            raise RecordingNotReadyError(f"Could not start the audio capture stream: {e}", step="start_recording", inner_exception=e)

        self.pump_task = asyncio.create_task(self.pump(), name="recording:pump")
        logger.info("Recording audio only...")

    async def pump(self):
        try:
            async for chunk in self.stream:
                self.sink.write(chunk)
        except Exception as e:
            logger.info(f"Error piping audio to the recording sink: {e}")

    async def stop(self):
        if self.stream is None:
            logger.info("No recording stream was started, nothing to stop")
            return False
        if self.stream_stopped:
            logger.info("Recording stream already stopped")
            return False

        logger.info("Stopping recording...")
        self.stream_stopped = True
        try:
            self.stream.destroy()
            logger.info("Recording stream destroyed successfully")
        except Exception as e:
            logger.info(f"Error destroying recording stream: {e}")

        if self.pump_task is not None and not self.pump_task.done():
            self.pump_task.cancel()
            await asyncio.gather(self.pump_task, return_exceptions=True)
        return True

    def close_sink(self):
        if self.sink is None or self.sink_closed:
            logger.info("Recording sink is not open, nothing to close")
            return False

        logger.info("Closing recording file...")
        self.sink_closed = True
        self.sink.close()
        return True
