import asyncio
import json
import logging
import os
import threading
import time
from time import sleep
from urllib.parse import urlsplit

import numpy as np
from django.conf import settings
from pyvirtualdisplay import Display
from selenium import webdriver
from selenium.common.exceptions import NoSuchElementException, TimeoutException
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait
from websockets.sync.server import serve

from recording_bots.exceptions import ElementTimeout

from .audio_capture_stream import AudioCaptureStream
from .automation_surface import AutomationSurface, ElementState

logger = logging.getLogger(__name__)


def locator_for_selector(selector):
    if selector.startswith("//"):
        return (By.XPATH, selector)
    return (By.CSS_SELECTOR, selector)


class WebAutomationSurface(AutomationSurface):
    """Drives a Chrome instance through Selenium.

    Audio leaves the page through a websocket: the payload script posts binary messages whose first
    4 bytes are a little endian message type (1 = JSON, 3 = mixed audio as float32 samples).
    """

    ABSENCE_POLL_INTERVAL_SECONDS = 1
    WEBSOCKET_DRAIN_QUIET_SECONDS = 2
    WEBSOCKET_DRAIN_MAX_SECONDS = 10

    def __init__(
        self,
        *,
        display_name,
        window_size=None,
        websocket_port=None,
        audio_sample_rate=None,
        chromedriver_path=None,
    ):
        self.display_name = display_name
        self.window_size = window_size or settings.BOT_WINDOW_SIZE
        self.initial_websocket_port = websocket_port or settings.BOT_WEBSOCKET_PORT
        self.audio_sample_rate = audio_sample_rate or settings.BOT_AUDIO_SAMPLE_RATE
        self.chromedriver_path = chromedriver_path or settings.CHROMEDRIVER_PATH

        self.driver = None
        self.display = None
        self.loop = None

        self.websocket_port = None
        self.websocket_server = None
        self.websocket_thread = None
        self.last_websocket_message_processed_time = None

        self.audio_stream = None

    def is_open(self):
        return self.driver is not None

    async def open(self):
        self.loop = asyncio.get_running_loop()
        await asyncio.to_thread(self.init)

    def init(self):
        try:
            if self.display is None and os.environ.get("DISPLAY") is None:
                # Create virtual display only if no real display is available
                self.display = Display(visible=0, size=(self.window_size[0] + 10, self.window_size[1] + 10))
                self.display.start()

            if self.websocket_server is None:
                self.websocket_port = None

                # Start websocket server in a separate thread
                self.websocket_thread = threading.Thread(target=self.run_websocket_server, daemon=True)
                self.websocket_thread.start()

                sleep(0.5)  # Give the websocket server time to start
                if not self.websocket_port:
                    raise Exception("WebSocket server failed to start")

            self.init_driver()
        except Exception:
            logger.info("Opening the browser failed, stopping the display and websocket server")
            self.stop_transport()
            raise

    def init_driver(self):
        options = webdriver.ChromeOptions()

        options.add_argument("--autoplay-policy=no-user-gesture-required")
        options.add_argument("--use-fake-device-for-media-stream")
        options.add_argument("--use-fake-ui-for-media-stream")
        options.add_argument(f"--window-size={self.window_size[0]},{self.window_size[1]}")
        options.add_argument("--disable-gpu")
        options.add_argument("--disable-extensions")
        options.add_argument("--disable-application-cache")
        options.add_argument("--disable-dev-shm-usage")
        options.add_argument("--disable-blink-features=AutomationControlled")
        options.add_experimental_option("excludeSwitches", ["enable-automation"])

        if not settings.ENABLE_CHROME_SANDBOX:
            options.add_argument("--no-sandbox")
            options.add_argument("--disable-setuid-sandbox")
            logger.info("Chrome sandboxing is disabled")
        else:
            logger.info("Chrome sandboxing is enabled")

        prefs = {
            "credentials_enable_service": False,
            "profile.password_manager_enabled": False,
        }
        options.add_experimental_option("prefs", prefs)

        self.driver = webdriver.Chrome(options=options, service=Service(executable_path=self.chromedriver_path))
        logger.info(f"web driver server initialized at port {self.driver.service.port}")

        initial_data_code = f"window.initialData = {{websocketPort: {self.websocket_port}, botName: {json.dumps(self.display_name)}, sampleRate: {self.audio_sample_rate}}}"

        current_dir = os.path.dirname(os.path.abspath(__file__))
        with open(os.path.join(current_dir, "audio_capture_payload.js"), "r") as file:
            payload_code = file.read()

        combined_code = f"""
            {initial_data_code}
            {payload_code}
        """

        self.driver.execute_cdp_cmd("Page.addScriptToEvaluateOnNewDocument", {"source": combined_code})

    def run_websocket_server(self):
        port = self.initial_websocket_port
        max_retries = 10

        for attempt in range(max_retries):
            try:
                self.websocket_server = serve(
                    self.handle_websocket,
                    "localhost",
                    port,
                    compression=None,
                    max_size=None,
                )
                logger.info(f"Websocket server started on ws://localhost:{port}")
                self.websocket_port = port
                self.websocket_server.serve_forever()
                break
            except OSError as e:
                if e.errno == 98:  # Address already in use
                    logger.info(f"Port {port} is already in use, trying next port...")
                    port += 1
                    if attempt == max_retries - 1:
                        raise Exception(f"Could not find available port after {max_retries} attempts")
                    continue
                raise

    def handle_websocket(self, websocket):
        try:
            for message in websocket:
                message_type = int.from_bytes(message[:4], byteorder="little")

                if message_type == 1:  # JSON
                    json_data = json.loads(message[4:].decode("utf-8"))
                    logger.info("Received JSON message: %s", json_data)
                    if isinstance(json_data, dict) and json_data.get("type") == "AudioFormatUpdate":
                        self.handle_audio_format_update(json_data["format"])

                elif message_type == 3:  # AUDIO
                    self.process_mixed_audio_frame(message)

                self.last_websocket_message_processed_time = time.time()
        except Exception as e:
            logger.info(f"Websocket error: {e}")
            raise e

    def handle_audio_format_update(self, audio_format):
        logger.info(f"audio format {audio_format}")
        sample_rate = audio_format.get("sampleRate")
        if sample_rate and sample_rate != self.audio_sample_rate:
            logger.warning(f"Page reports a sample rate of {sample_rate} but the recording is written at {self.audio_sample_rate}")

    def process_mixed_audio_frame(self, message):
        if len(message) <= 12:
            return
        if not self.audio_stream:
            return

        audio_data = np.frombuffer(message[4:], dtype=np.float32)

        # Convert float32 to PCM 16-bit, clipping so that full scale samples do not wrap around
        audio_data = (np.clip(audio_data, -1.0, 1.0) * 32767.0).astype(np.int16)

        self.audio_stream.push_threadsafe(audio_data.tobytes())

    def find_element_by_selector(self, selector):
        try:
            return self.driver.find_element(*locator_for_selector(selector))
        except NoSuchElementException:
            return None
        except Exception as e:
            logger.info(f"Unknown error occurred in find_element_by_selector. Exception type = {type(e)}")
            return None

    async def navigate(self, url):
        logger.info(f"Navigating to URL: {url}")
        await asyncio.to_thread(self.driver.get, url)

        parts = urlsplit(url)
        await asyncio.to_thread(
            self.driver.execute_cdp_cmd,
            "Browser.grantPermissions",
            {
                "origin": f"{parts.scheme}://{parts.netloc}",
                "permissions": ["audioCapture", "videoCapture"],
            },
        )

    def click_when_ready_sync(self, selector, timeout):
        try:
            element = WebDriverWait(self.driver, timeout).until(EC.element_to_be_clickable(locator_for_selector(selector)))
            element.click()
            return True
        except Exception as e:
            logger.info(f"Could not click {selector} within {timeout} seconds. Error: {e}")
            return False

    async def click_when_ready(self, selector, timeout):
        return await asyncio.to_thread(self.click_when_ready_sync, selector, timeout)

    def wait_for_presence_sync(self, selector, timeout):
        try:
            WebDriverWait(self.driver, timeout).until(EC.visibility_of_element_located(locator_for_selector(selector)))
        except TimeoutException as e:
            raise ElementTimeout(f"{selector} did not appear within {timeout} seconds", step="wait_for_presence", inner_exception=e, selector=selector)

    async def wait_for_presence(self, selector, timeout):
        await asyncio.to_thread(self.wait_for_presence_sync, selector, timeout)

    async def wait_for_absence(self, selector, timeout):
        # Polls instead of handing the wait to a WebDriverWait so the wait stays cancellable
        started_at = time.monotonic()
        while True:
            state = await self.element_state(selector)
            if not state.present:
                return
            if timeout is not None and time.monotonic() - started_at >= timeout:
                raise ElementTimeout(f"{selector} did not disappear within {timeout} seconds", step="wait_for_absence", selector=selector)
            await asyncio.sleep(self.ABSENCE_POLL_INTERVAL_SECONDS)

    def fill_field_sync(self, selector, text):
        element = self.driver.find_element(*locator_for_selector(selector))
        element.clear()
        element.send_keys(text)

    async def fill_field(self, selector, text):
        await asyncio.to_thread(self.fill_field_sync, selector, text)

    def query_all_sync(self, selector):
        texts = []
        for element in self.driver.find_elements(*locator_for_selector(selector)):
            text = element.get_attribute("title") or element.text or ""
            texts.append(text.strip())
        return texts

    async def query_all(self, selector):
        return await asyncio.to_thread(self.query_all_sync, selector)

    def element_state_sync(self, selector):
        element = self.find_element_by_selector(selector)
        if element is None:
            return ElementState(present=False)
        return ElementState(present=True, disabled=element.get_attribute("disabled") is not None)

    async def element_state(self, selector):
        return await asyncio.to_thread(self.element_state_sync, selector)

    async def capture_audio_stream(self):
        self.audio_stream = AudioCaptureStream(self.loop or asyncio.get_running_loop())
        logger.info("enable media sending")
        await asyncio.to_thread(self.driver.execute_script, "window.ws?.enableMediaSending();")
        return self.audio_stream

    async def screenshot(self):
        return await asyncio.to_thread(self.driver.get_screenshot_as_png)

    def cleanup_driver(self):
        try:
            logger.info("disable media sending")
            self.driver.execute_script("window.ws?.disableMediaSending();")
        except Exception as e:
            logger.info(f"Error during media sending disable: {e}")

        self.wait_for_websocket_buffers_to_drain()

        # Simulate closing browser window
        try:
            self.driver.close()
        except Exception as e:
            logger.info(f"Error closing driver: {e}")

        # Then quit the driver
        try:
            self.driver.quit()
        except Exception as e:
            logger.info(f"Error quitting driver: {e}")

        self.driver = None

    def wait_for_websocket_buffers_to_drain(self):
        if not self.last_websocket_message_processed_time:
            return
        time_when_shutdown_initiated = time.time()
        while time.time() - self.last_websocket_message_processed_time < self.WEBSOCKET_DRAIN_QUIET_SECONDS and time.time() - time_when_shutdown_initiated < self.WEBSOCKET_DRAIN_MAX_SECONDS:
            logger.info(f"Waiting until it's {self.WEBSOCKET_DRAIN_QUIET_SECONDS} seconds since the last websocket message was processed. Currently it is {time.time() - self.last_websocket_message_processed_time} seconds")
            sleep(0.5)

    async def close(self):
        if not self.driver:
            logger.info("Driver already closed, doing nothing")
            return
        await asyncio.to_thread(self.cleanup_driver)

    def stop_transport(self):
        if self.websocket_server:
            try:
                self.websocket_server.shutdown()
            except Exception as e:
                logger.info(f"Error shutting down websocket server: {e}")
            self.websocket_server = None

        if self.display:
            try:
                self.display.stop()
            except Exception as e:
                logger.info(f"Error stopping virtual display: {e}")
            self.display = None

    async def release_transport(self):
        await asyncio.to_thread(self.stop_transport)
