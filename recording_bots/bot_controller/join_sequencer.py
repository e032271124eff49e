import datetime
import logging
import os
from dataclasses import dataclass

from recording_bots.exceptions import ElementTimeout, JoinConfigurationError, UiCouldNotClickElementException, WaitingRoomTimeoutError
from recording_bots.models import AdmissionTypes, Status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JoinOutcome:
    admission_type: AdmissionTypes
    admission_timeout_ms: int


def describe_duration_ms(duration_ms):
    if duration_ms > 60 * 1000:
        return f"{duration_ms / 60 / 1000} minute(s)"
    return f"{duration_ms / 1000} second(s)"


class JoinSequencer:
    """
    Gets the bot from "not in the meeting" to "in the meeting".

    Each UI step is retried through the RetryPolicy. Entering the display name and clicking join are
    required, so exhausting their retries raises JoinConfigurationError. Muting the microphone and
    dismissing the "join on web" interstitial are best effort. Whether the bot landed in the waiting
    room is returned as a classification, and only overstaying the applicable admission timeout
    raises WaitingRoomTimeoutError.
    """

    JOIN_ON_WEB_TIMEOUT_SECONDS = 5
    ELEMENT_TIMEOUT_SECONDS = 5
    JOIN_SETTLE_DELAY_SECONDS = 10
    JOIN_BUTTON_RELEASE_TIMEOUT_SECONDS = 10
    JOIN_BUTTON_POLL_INTERVAL_SECONDS = 0.5
    DIRECT_JOIN_TIMEOUT_MS = 30000

    def __init__(
        self,
        *,
        surface,
        platform,
        meeting_url,
        display_name,
        automatic_leave_configuration,
        retry_policy,
        clock,
        notifier,
        on_status,
        debug_screenshot_directory=None,
    ):
        self.surface = surface
        self.platform = platform
        self.meeting_url = meeting_url
        self.display_name = display_name
        self.automatic_leave_configuration = automatic_leave_configuration
        self.retry_policy = retry_policy
        self.clock = clock
        self.notifier = notifier
        self.on_status = on_status
        self.debug_screenshot_directory = debug_screenshot_directory

    async def join(self) -> JoinOutcome:
        await self.open_and_navigate()
        await self.on_status(Status.JOINING_CALL)

        await self.dismiss_join_on_web_interstitial()
        await self.fill_out_name_input()
        await self.turn_off_microphone()
        await self.click_join_button()
        await self.resubmit_join_if_still_offered()
        await self.wait_for_join_button_release()

        admission_type = await self.classify_admission()
        return await self.wait_for_admission(admission_type)

    async def require(self, operation, description, step):
        outcome = await self.retry_policy.execute(operation, description)
        if not outcome.succeeded:
            raise JoinConfigurationError(f"Failed to join meeting: could not complete '{description}' after {outcome.attempts} attempts", step=step, inner_exception=outcome.exception)
        return outcome.result

    async def open_and_navigate(self):
        async def operation():
            if not self.surface.is_open():
                await self.surface.open()
                logger.info("Opened automation surface")
            await self.surface.navigate(self.meeting_url)

        await self.require(operation, "Opening the meeting page", step="navigate")

    async def dismiss_join_on_web_interstitial(self):
        if not self.platform.join_on_web_selector:
            return

        try:
            joined_on_web = await self.surface.click_when_ready(self.platform.join_on_web_selector, self.JOIN_ON_WEB_TIMEOUT_SECONDS)
        except Exception as e:
            logger.info(f"Error clicking the join on web button: {e}")
            joined_on_web = False

        if not joined_on_web:
            logger.info('Could not click "Join on Web" button within timeout, continuing...')

    async def fill_out_name_input(self):
        async def operation():
            await self.surface.wait_for_presence(self.platform.display_name_input_selector, self.ELEMENT_TIMEOUT_SECONDS)
            await self.surface.fill_field(self.platform.display_name_input_selector, self.display_name)

        await self.require(operation, "Entering display name", step="name_input")

    async def turn_off_microphone(self):
        if not self.platform.mute_button_selector:
            return

        async def operation():
            await self.click(self.platform.mute_button_selector, "turn_off_microphone_button")

        outcome = await self.retry_policy.execute(operation, "Muting microphone")
        if not outcome.succeeded:
            logger.warning("Could not mute microphone after multiple attempts. Continuing anyway.")
            self.notifier.log("Could not mute microphone, continuing with the microphone on")

    async def click_join_button(self):
        async def operation():
            await self.click(self.platform.join_button_selector, "join_button")

        await self.require(operation, "Clicking the join button", step="join_button")

    async def click(self, selector, step):
        await self.surface.wait_for_presence(selector, self.ELEMENT_TIMEOUT_SECONDS)
        clicked = await self.surface.click_when_ready(selector, self.ELEMENT_TIMEOUT_SECONDS)
        if not clicked:
            raise UiCouldNotClickElementException(f"Could not click {selector}", step)

    async def resubmit_join_if_still_offered(self):
        # Teams sometimes asks a second time before it accepts the join. Clicking an enabled join
        # button again is harmless, a disabled one means the request is already pending.
        logger.info(f"Waiting for {self.JOIN_SETTLE_DELAY_SECONDS} seconds...")
        await self.clock.sleep(self.JOIN_SETTLE_DELAY_SECONDS)

        try:
            join_button_state = await self.surface.element_state(self.platform.join_button_selector)
            if not join_button_state.present or join_button_state.disabled:
                return

            logger.info("Join button is still offered, clicking it again")
            await self.surface.click_when_ready(self.platform.join_button_selector, self.ELEMENT_TIMEOUT_SECONDS)
        except Exception as e:
            logger.info(f"Error clicking the join button a second time: {e}")
            return

        logger.info(f"Waiting for {self.JOIN_SETTLE_DELAY_SECONDS} seconds...")
        await self.clock.sleep(self.JOIN_SETTLE_DELAY_SECONDS)

    async def wait_for_join_button_release(self):
        logger.info("Waiting for join button to be disabled or disappear...")
        started_at = self.clock.now()
        while self.clock.now() - started_at < self.JOIN_BUTTON_RELEASE_TIMEOUT_SECONDS:
            try:
                join_button_state = await self.surface.element_state(self.platform.join_button_selector)
                if not join_button_state.present or join_button_state.disabled:
                    logger.info("Join button is now disabled or has disappeared - successfully proceeding")
                    return
            except Exception as e:
                logger.info(f"Error checking the join button state: {e}")
            await self.clock.sleep(self.JOIN_BUTTON_POLL_INTERVAL_SECONDS)

        logger.warning("Join button may not have been disabled - attempting to continue anyway")
        await self.save_debug_screenshot("join_button_state_error")

    async def classify_admission(self):
        try:
            join_button_state = await self.surface.element_state(self.platform.join_button_selector)
        except Exception as e:
            logger.info(f"Error checking for the waiting room, assuming a direct join: {e}")
            return AdmissionTypes.DIRECT

        if join_button_state.present and join_button_state.disabled:
            return AdmissionTypes.WAITING_ROOM
        return AdmissionTypes.DIRECT

    async def wait_for_admission(self, admission_type):
        if admission_type == AdmissionTypes.WAITING_ROOM:
            timeout_ms = self.automatic_leave_configuration.waiting_room_timeout_ms
            logger.info(f"Joined waiting room, will wait for {describe_duration_ms(timeout_ms)}")
            await self.on_status(Status.IN_WAITING_ROOM)
        else:
            timeout_ms = self.DIRECT_JOIN_TIMEOUT_MS

        # The leave control only shows up once we are actually in the meeting
        logger.info(f"Waiting for the ability to leave the meeting for {timeout_ms} ms")
        try:
            await self.surface.wait_for_presence(self.platform.leave_button_selector, timeout_ms / 1000)
        except ElementTimeout as e:
            await self.save_debug_screenshot("admission_timeout")
            raise WaitingRoomTimeoutError(
                f"Not admitted to the meeting within {describe_duration_ms(timeout_ms)} ({admission_type.label})",
                step="wait_for_admission",
                inner_exception=e,
                admission_type=admission_type,
                timeout_ms=timeout_ms,
            )

        logger.info("Successfully joined meeting")
        return JoinOutcome(admission_type=admission_type, admission_timeout_ms=timeout_ms)

    async def save_debug_screenshot(self, name):
        if not self.debug_screenshot_directory:
            return None

        timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
        screenshot_path = os.path.join(self.debug_screenshot_directory, f"{name}_{timestamp}.png")
        try:
            screenshot = await self.surface.screenshot()
            with open(screenshot_path, "wb") as file:
                file.write(screenshot)
            logger.info(f"Screenshot saved to {screenshot_path}")
            return screenshot_path
        except Exception as e:
            logger.info(f"Error saving screenshot: {e}")
            return None
