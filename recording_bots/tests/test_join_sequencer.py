import asyncio
import os
import tempfile
from unittest.mock import AsyncMock

from django.test import SimpleTestCase

from recording_bots.automatic_leave_configuration import AutomaticLeaveConfiguration
from recording_bots.bot_controller import JoinSequencer, RetryPolicy
from recording_bots.bot_controller.notifier import EventNotifier
from recording_bots.exceptions import JoinConfigurationError, WaitingRoomTimeoutError
from recording_bots.models import AdmissionTypes, EventCode, Status

from .fakes import TEST_PLATFORM, EventRecorder, FakeClock, create_meeting_surface

MEETING_URL = "https://teams.microsoft.com/l/meetup-join/abc?suppressPrompt=true"


class JoinSequencerTests(SimpleTestCase):
    def create_sequencer(self, debug_screenshot_directory=None, **automatic_leave):
        self.clock = FakeClock()
        self.surface = create_meeting_surface(self.clock)
        self.recorder = EventRecorder()
        self.on_status = AsyncMock()
        return JoinSequencer(
            surface=self.surface,
            platform=TEST_PLATFORM,
            meeting_url=MEETING_URL,
            display_name="Test Bot",
            automatic_leave_configuration=AutomaticLeaveConfiguration(**automatic_leave),
            retry_policy=RetryPolicy(self.clock),
            clock=self.clock,
            notifier=EventNotifier(self.recorder),
            on_status=self.on_status,
            debug_screenshot_directory=debug_screenshot_directory,
        )

    def put_in_waiting_room(self):
        self.surface.click_effects["#join"] = lambda: self.surface.disabled.add("#join")

    def admit(self):
        self.surface.present.discard("#join")
        self.surface.disabled.discard("#join")
        self.surface.present.add("#leave")

    async def join(self, sequencer, max_seconds=3600):
        return await self.clock.run_until_complete(asyncio.ensure_future(sequencer.join()), max_seconds=max_seconds)

    async def test_direct_join(self):
        sequencer = self.create_sequencer()

        outcome = await self.join(sequencer)

        self.assertEqual(outcome.admission_type, AdmissionTypes.DIRECT)
        self.assertEqual(outcome.admission_timeout_ms, 30000)
        self.assertEqual(self.surface.calls[:2], [("open",), ("navigate", MEETING_URL)])
        self.assertIn(("fill_field", "#name", "Test Bot"), self.surface.calls)
        self.assertIn(("click_when_ready", "#mute", 5), self.surface.calls)
        self.assertIn(("wait_for_presence", "#leave", 30.0), self.surface.calls)
        self.on_status.assert_awaited_once_with(Status.JOINING_CALL)

    async def test_waiting_room_uses_waiting_room_timeout(self):
        sequencer = self.create_sequencer(waiting_room_timeout_ms=120000)
        self.put_in_waiting_room()

        task = asyncio.ensure_future(sequencer.join())
        await self.clock.advance(60)
        self.assertFalse(task.done())
        self.admit()
        outcome = await self.clock.run_until_complete(task)

        self.assertEqual(outcome.admission_type, AdmissionTypes.WAITING_ROOM)
        self.assertEqual(outcome.admission_timeout_ms, 120000)
        self.assertIn(("wait_for_presence", "#leave", 120.0), self.surface.calls)
        self.assertEqual([call.args[0] for call in self.on_status.await_args_list], [Status.JOINING_CALL, Status.IN_WAITING_ROOM])

    async def test_waiting_room_timeout(self):
        sequencer = self.create_sequencer(waiting_room_timeout_ms=60000)
        self.put_in_waiting_room()

        with self.assertRaises(WaitingRoomTimeoutError) as context:
            await self.join(sequencer)

        self.assertEqual(context.exception.admission_type, AdmissionTypes.WAITING_ROOM)
        self.assertEqual(context.exception.timeout_ms, 60000)
        self.assertEqual(context.exception.step, "wait_for_admission")

    async def test_direct_join_timeout_is_not_the_waiting_room_timeout(self):
        sequencer = self.create_sequencer(waiting_room_timeout_ms=900000)
        # Join is accepted but the leave control never shows up
        self.surface.click_effects["#join"] = lambda: self.surface.present.discard("#join")

        with self.assertRaises(WaitingRoomTimeoutError) as context:
            await self.join(sequencer, max_seconds=120)

        self.assertEqual(context.exception.admission_type, AdmissionTypes.DIRECT)
        self.assertEqual(context.exception.timeout_ms, 30000)

    async def test_display_name_failure_exhausts_retries(self):
        sequencer = self.create_sequencer()
        self.surface.fill_field_failures = 3

        with self.assertRaises(JoinConfigurationError) as context:
            await self.join(sequencer)

        self.assertEqual(context.exception.step, "name_input")
        self.assertEqual(len(self.surface.calls_named("fill_field")), 3)
        self.assertNotIn(("click_when_ready", "#join", 5), self.surface.calls)

    async def test_display_name_succeeds_on_last_attempt(self):
        sequencer = self.create_sequencer()
        self.surface.fill_field_failures = 2

        outcome = await self.join(sequencer)

        self.assertEqual(outcome.admission_type, AdmissionTypes.DIRECT)
        self.assertEqual(len(self.surface.calls_named("fill_field")), 3)

    async def test_mute_failure_is_not_fatal(self):
        sequencer = self.create_sequencer()
        self.surface.present.discard("#mute")

        outcome = await self.join(sequencer)

        self.assertEqual(outcome.admission_type, AdmissionTypes.DIRECT)
        self.assertEqual(len([call for call in self.surface.calls if call[:2] == ("wait_for_presence", "#mute")]), 3)
        log_messages = [data["message"] for data in self.recorder.of_type(EventCode.LOG)]
        self.assertEqual(log_messages, ["Could not mute microphone, continuing with the microphone on"])

    async def test_missing_join_on_web_interstitial_is_not_fatal(self):
        sequencer = self.create_sequencer()
        self.surface.present.discard("#join-on-web")

        outcome = await self.join(sequencer)

        self.assertEqual(outcome.admission_type, AdmissionTypes.DIRECT)
        self.assertEqual(len([call for call in self.surface.calls if call[1:2] == ("#join-on-web",)]), 1)

    async def test_join_button_failure_is_fatal(self):
        sequencer = self.create_sequencer()
        self.surface.present.discard("#join")

        with self.assertRaises(JoinConfigurationError) as context:
            await self.join(sequencer)

        self.assertEqual(context.exception.step, "join_button")

    async def test_join_is_clicked_again_if_still_offered(self):
        sequencer = self.create_sequencer()
        clicks = []

        def admit_on_second_click():
            clicks.append(self.clock.now())
            if len(clicks) == 2:
                self.admit()

        self.surface.click_effects["#join"] = admit_on_second_click

        outcome = await self.join(sequencer)

        self.assertEqual(outcome.admission_type, AdmissionTypes.DIRECT)
        self.assertEqual(clicks, [1000.0, 1010.0])

    async def test_pending_join_is_not_clicked_again(self):
        sequencer = self.create_sequencer()
        self.put_in_waiting_room()

        task = asyncio.ensure_future(sequencer.join())
        await self.clock.advance(15)
        self.admit()
        await self.clock.run_until_complete(task)

        self.assertEqual(len([call for call in self.surface.calls if call[:2] == ("click_when_ready", "#join")]), 1)

    async def test_admission_timeout_saves_a_debug_screenshot(self):
        with tempfile.TemporaryDirectory() as directory:
            sequencer = self.create_sequencer(debug_screenshot_directory=directory, waiting_room_timeout_ms=5000)
            self.put_in_waiting_room()

            with self.assertRaises(WaitingRoomTimeoutError):
                await self.join(sequencer)

            screenshots = os.listdir(directory)
            self.assertEqual(len(screenshots), 1)
            self.assertTrue(screenshots[0].startswith("admission_timeout_"))
