from typing import NamedTuple, Sequence


class ElementState(NamedTuple):
    present: bool
    disabled: bool = False


class AutomationSurface:
    """The capability the bot core drives to interact with a meeting client.

    Timeouts are in seconds. A timeout of None on wait_for_absence waits until the element is gone.
    """

    def is_open(self) -> bool:
        raise NotImplementedError

    async def open(self):
        raise NotImplementedError

    async def navigate(self, url: str):
        raise NotImplementedError

    # Returns False instead of raising when the element never became clickable
    async def click_when_ready(self, selector: str, timeout: float) -> bool:
        raise NotImplementedError

    # Raises ElementTimeout
    async def wait_for_presence(self, selector: str, timeout: float):
        raise NotImplementedError

    # Raises ElementTimeout
    async def wait_for_absence(self, selector: str, timeout: float | None):
        raise NotImplementedError

    async def fill_field(self, selector: str, text: str):
        raise NotImplementedError

    async def query_all(self, selector: str) -> Sequence[str]:
        raise NotImplementedError

    async def element_state(self, selector: str) -> ElementState:
        raise NotImplementedError

    async def capture_audio_stream(self):
        raise NotImplementedError

    async def screenshot(self) -> bytes:
        raise NotImplementedError

    async def close(self):
        raise NotImplementedError

    # Sub-classes that depend on a transport besides the browser session release it here
    async def release_transport(self):
        pass
