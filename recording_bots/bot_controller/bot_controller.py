import asyncio
import inspect
import logging
from dataclasses import dataclass, field

from recording_bots.clock import Clock
from recording_bots.exceptions import TeardownStepError
from recording_bots.models import EventCode, MeetingEndReasons, Status

from .join_sequencer import JoinSequencer
from .notifier import EventNotifier
from .participant_tracker import ParticipantTracker
from .periodic_timer import PeriodicTimer
from .recording_session import RecordingSession
from .retry_policy import RetryPolicy

logger = logging.getLogger(__name__)


@dataclass
class BotResources:
    """Everything the controller has to give back at the end of the bot's life."""

    recording_session: RecordingSession = field(default_factory=RecordingSession)
    participant_timer: PeriodicTimer | None = None
    meeting_status_timer: PeriodicTimer | None = None
    surface_closed: bool = False
    transport_released: bool = False
    teardown_errors: list = field(default_factory=list)

    def timers(self):
        return [timer for timer in (self.participant_timer, self.meeting_status_timer) if timer is not None]

    @property
    def all_released(self):
        timers_cleared = all(not timer.is_set for timer in self.timers())
        return self.recording_session.released and timers_cleared and self.surface_closed and self.transport_released


class BotLifecycleController:
    MEETING_STATUS_POLL_INTERVAL_SECONDS = 10
    PARTICIPANT_LIST_TIMEOUT_SECONDS = 10
    LEAVE_BUTTON_TIMEOUT_SECONDS = 6

    def __init__(
        self,
        *,
        config,
        surface,
        platform,
        sink,
        on_event=None,
        clock=None,
        retry_policy=None,
        debug_screenshot_directory=None,
    ):
        self.config = config
        self.surface = surface
        self.platform = platform
        self.sink = sink
        self.clock = clock or Clock()
        self.notifier = EventNotifier(on_event)

        self.status = Status.READY_TO_DEPLOY
        self.resources = BotResources()
        self.teardown_called = False
        self.run_called = False
        self.roster_tracking_enabled = False
        self.meeting_not_live = asyncio.Event()

        self.join_sequencer = JoinSequencer(
            surface=surface,
            platform=platform,
            meeting_url=config.meeting_url,
            display_name=config.display_name,
            automatic_leave_configuration=config.automatic_leave,
            retry_policy=retry_policy or RetryPolicy(self.clock),
            clock=self.clock,
            notifier=self.notifier,
            on_status=self.set_status,
            debug_screenshot_directory=debug_screenshot_directory,
        )
        self.participant_tracker = ParticipantTracker(
            surface=surface,
            participant_name_selector=platform.participant_name_selector,
            everyone_left_timeout_ms=config.automatic_leave.everyone_left_timeout_ms,
            notifier=self.notifier,
            clock=self.clock,
        )

    @property
    def recording_session(self):
        return self.resources.recording_session

    async def set_status(self, new_status, data=None):
        if not Status.is_valid_transition(self.status, new_status):
            logger.info(f"Ignoring transition from {self.status} to {new_status}")
            return False

        logger.info(f"Bot status changed: {self.status} -> {new_status}")
        self.status = new_status
        await self.notifier.emit(EventCode.for_status(new_status), data)
        return True

    async def run(self):
        if self.run_called:
            raise RuntimeError("run() may only be called once per bot")
        self.run_called = True

        await self.set_status(Status.DEPLOYING)

        try:
            join_outcome = await self.join_sequencer.join()
            await self.set_status(Status.IN_CALL, {"admission": join_outcome.admission_type.value})
            await self.recording_session.start(self.surface, self.sink)

            await self.start_participant_tracking()
            self.start_meeting_status_polling()
        except Exception as e:
            logger.exception(f"Bot failed with {e.__class__.__name__}: {e}")
            await self.fail(e)
            return self.status

        end_reason = await self.wait_for_meeting_end()
        logger.info(f"Meeting ended: {end_reason}")
        # No participant or status events may follow CALL_ENDED
        self.stop_polling()
        await self.set_status(Status.CALL_ENDED, {"reason": end_reason.value})

        if end_reason == MeetingEndReasons.EVERYONE_LEFT:
            await self.click_leave_button()

        await self.end_life()
        await self.notifier.drain()
        await self.set_status(Status.DONE)
        return self.status

    async def fail(self, exception):
        await self.end_life()
        await self.notifier.drain()
        await self.set_status(
            Status.FATAL,
            {
                "error": exception.__class__.__name__,
                "message": str(exception),
                "step": getattr(exception, "step", None),
            },
        )

    async def start_participant_tracking(self):
        self.roster_tracking_enabled = await self.open_participant_list()
        if not self.roster_tracking_enabled:
            return

        # Seed the roster before the first scheduled tick
        await self.participant_tracker.tick()

        self.resources.participant_timer = PeriodicTimer("participant_poll", self.config.heartbeat_interval_ms / 1000, self.participant_tracker.tick, self.clock)
        self.resources.participant_timer.start()

    async def open_participant_list(self):
        logger.info("Opening the participants list")
        clicked = await self.surface.click_when_ready(self.platform.participants_button_selector, self.PARTICIPANT_LIST_TIMEOUT_SECONDS)
        if not clicked:
            logger.info("Could not click the participants button")

        logger.info("Waiting for the attendees tree to appear")
        try:
            await self.surface.wait_for_presence(self.platform.participants_list_selector, self.PARTICIPANT_LIST_TIMEOUT_SECONDS)
        except Exception as e:
            logger.warning(f"Participants list never appeared, continuing without roster tracking: {e}")
            self.notifier.log("Participants list unavailable, alone detection disabled")
            return False

        logger.info("Attendees tree found")
        return True

    def start_meeting_status_polling(self):
        self.resources.meeting_status_timer = PeriodicTimer("meeting_status_poll", self.MEETING_STATUS_POLL_INTERVAL_SECONDS, self.check_meeting_status, self.clock)
        self.resources.meeting_status_timer.start()

    def stop_polling(self):
        for timer in self.resources.timers():
            timer.clear()

    async def is_meeting_live(self):
        leave_button_state = await self.surface.element_state(self.platform.leave_button_selector)
        if not leave_button_state.present:
            logger.info("Leave control is gone, meeting is no longer live")
            return False

        for selector in self.platform.meeting_ended_selectors:
            if (await self.surface.element_state(selector)).present:
                logger.info(f"Meeting ended indicator {selector} is present, meeting is no longer live")
                return False

        return True

    async def check_meeting_status(self):
        try:
            live = await self.is_meeting_live()
        except Exception as e:
            # Unknown is treated as live. The leave control wait still catches a real ending.
            logger.info(f"Error checking meeting status: {e}")
            return

        if not live:
            self.meeting_not_live.set()

    async def wait_for_meeting_end(self):
        triggers = {
            asyncio.create_task(self.meeting_not_live.wait(), name="trigger:meeting_status"): MeetingEndReasons.MEETING_NOT_LIVE,
            asyncio.create_task(self.participant_tracker.leave_now.wait(), name="trigger:everyone_left"): MeetingEndReasons.EVERYONE_LEFT,
            # Intentionally unbounded, the meeting's own duration bounds it
            asyncio.create_task(self.surface.wait_for_absence(self.platform.leave_button_selector, None), name="trigger:leave_control"): MeetingEndReasons.LEAVE_CONTROL_DISAPPEARED,
        }

        done, pending = await asyncio.wait(triggers.keys(), return_when=asyncio.FIRST_COMPLETED)

        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        for task, reason in triggers.items():
            if task not in done:
                continue
            if task.exception() is not None:
                logger.info(f"{task.get_name()} failed, treating the meeting as ended: {task.exception()}")
            return reason

    async def click_leave_button(self):
        try:
            clicked = await self.surface.click_when_ready(self.platform.leave_button_selector, self.LEAVE_BUTTON_TIMEOUT_SECONDS)
        except Exception as e:
            logger.info(f"Error clicking leave button: {e}")
            return
        if clicked:
            logger.info("Left meeting due to no other participants")
        else:
            logger.info("Could not click the leave button")

    async def run_teardown_step(self, step, action):
        try:
            result = action()
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            error = TeardownStepError(f"Teardown step {step} failed: {e}", step=step, inner_exception=e)
            logger.info(str(error))
            self.resources.teardown_errors.append(error)
            return None

    async def end_life(self):
        """Releases recording, timers and the automation surface. Only the first call does anything."""
        if self.teardown_called:
            logger.info("Teardown already called, exiting")
            return self.resources
        self.teardown_called = True

        resources = self.resources

        # Stop the stream before closing the sink so nothing is written to a closed file
        await self.run_teardown_step("stop_recording", resources.recording_session.stop)
        await self.run_teardown_step("close_recording_sink", resources.recording_session.close_sink)

        for timer in resources.timers():
            await self.run_teardown_step(f"clear_{timer.name}_timer", timer.clear)

        if await self.run_teardown_step("close_surface", self.close_surface):
            resources.surface_closed = True
        if await self.run_teardown_step("release_transport", self.release_transport):
            resources.transport_released = True

        logger.info(f"Bot shutdown complete. All resources released: {resources.all_released}")
        return resources

    async def close_surface(self):
        logger.info("Closing automation surface...")
        await self.surface.close()
        return True

    async def release_transport(self):
        await self.surface.release_transport()
        return True
