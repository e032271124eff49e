from django.test import SimpleTestCase

from recording_bots.bot_config import BotConfig, MeetingInfo, bot_config_from_dict
from recording_bots.exceptions import ConfigurationError
from recording_bots.meeting_url_utils import append_suppress_prompt, ensure_suppress_prompt, resolve_meeting_url
from recording_bots.platform_adapter import get_platform_adapter
from recording_bots.teams_bot_adapter import TEAMS_PLATFORM_ADAPTER


class MeetingUrlTests(SimpleTestCase):
    def test_suppress_prompt_is_added_to_a_plain_url(self):
        url = ensure_suppress_prompt("https://teams.microsoft.com/l/meetup-join/abc")
        self.assertEqual(url, "https://teams.microsoft.com/l/meetup-join/abc?suppressPrompt=true")

    def test_suppress_prompt_is_appended_to_existing_query(self):
        url = ensure_suppress_prompt("https://teams.microsoft.com/l/meetup-join/abc?context=%7B%22Tid%22%3A%22t%22%7D")
        self.assertEqual(url, "https://teams.microsoft.com/l/meetup-join/abc?context=%7B%22Tid%22%3A%22t%22%7D&suppressPrompt=true")

    def test_suppress_prompt_is_not_duplicated(self):
        url = "https://teams.microsoft.com/l/meetup-join/abc?suppressPrompt=true"
        self.assertEqual(ensure_suppress_prompt(url), url)
        self.assertEqual(ensure_suppress_prompt(url).count("suppressPrompt"), 1)

    def test_other_suppress_prompt_values_are_replaced(self):
        url = ensure_suppress_prompt("https://teams.microsoft.com/l/meetup-join/abc?suppressPrompt=false&a=1")
        self.assertEqual(url, "https://teams.microsoft.com/l/meetup-join/abc?a=1&suppressPrompt=true")

    def test_direct_url_suppress_prompt_goes_before_the_fragment(self):
        url = ensure_suppress_prompt("https://teams.microsoft.com/l/meetup-join/abc?a=1#section")
        self.assertEqual(url, "https://teams.microsoft.com/l/meetup-join/abc?a=1&suppressPrompt=true#section")

    def test_legacy_triple_builds_a_join_url(self):
        url = resolve_meeting_url(MeetingInfo(meeting_id="meeting-123", tenant_id="tenant-456", organizer_id="organizer-789"))

        self.assertIn("meeting-123", url)
        self.assertIn("tenant-456", url)
        self.assertIn("organizer-789", url)
        self.assertEqual(url.count("suppressPrompt=true"), 1)
        self.assertEqual(
            url,
            "https://teams.microsoft.com/v2/?meetingjoin=true#/l/meetup-join/19:meeting_meeting-123@thread.v2/0"
            "?context=%7b%22Tid%22%3a%22tenant-456%22%2c%22Oid%22%3a%22organizer-789%22%7d&anon=true&suppressPrompt=true",
        )

    def test_legacy_suppress_prompt_follows_the_fragment_route(self):
        url = append_suppress_prompt("https://teams.microsoft.com/v2/?meetingjoin=true#/l/meetup-join/x/0?context=c&anon=true")
        self.assertEqual(url, "https://teams.microsoft.com/v2/?meetingjoin=true#/l/meetup-join/x/0?context=c&anon=true&suppressPrompt=true")
        self.assertEqual(append_suppress_prompt(url), url)
        self.assertEqual(append_suppress_prompt("https://teams.microsoft.com/l/x"), "https://teams.microsoft.com/l/x?suppressPrompt=true")

    def test_meeting_url_wins_over_legacy_triple(self):
        url = resolve_meeting_url(
            MeetingInfo(
                meeting_url="https://teams.microsoft.com/l/meetup-join/abc",
                meeting_id="meeting-123",
                tenant_id="tenant-456",
                organizer_id="organizer-789",
            )
        )
        self.assertNotIn("meeting-123", url)

    def test_incomplete_legacy_triple_is_rejected(self):
        with self.assertRaises(ConfigurationError) as context:
            resolve_meeting_url(MeetingInfo(meeting_id="meeting-123", tenant_id="tenant-456"))
        self.assertIn("meeting_url", str(context.exception))

    def test_missing_meeting_target_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            resolve_meeting_url(MeetingInfo())

    def test_relative_meeting_url_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            resolve_meeting_url(MeetingInfo(meeting_url="teams.microsoft.com/l/meetup-join/abc"))


class BotConfigTests(SimpleTestCase):
    def test_meeting_url_is_resolved_at_construction(self):
        config = BotConfig(meeting_info=MeetingInfo(meeting_url="https://teams.microsoft.com/l/meetup-join/abc"))

        self.assertEqual(config.meeting_url, "https://teams.microsoft.com/l/meetup-join/abc?suppressPrompt=true")
        self.assertEqual(config.display_name, "Meeting Bot")
        self.assertEqual(config.heartbeat_interval_ms, 5000)
        self.assertEqual(config.automatic_leave.everyone_left_timeout_ms, 30000)

    def test_invalid_heartbeat_interval_is_rejected(self):
        for heartbeat_interval_ms in (0, -1000, 1.5, True, "5000"):
            with self.subTest(heartbeat_interval_ms=heartbeat_interval_ms):
                with self.assertRaises(ConfigurationError):
                    BotConfig(
                        meeting_info=MeetingInfo(meeting_url="https://teams.microsoft.com/l/meetup-join/abc"),
                        heartbeat_interval_ms=heartbeat_interval_ms,
                    )

    def test_empty_display_name_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            BotConfig(meeting_info=MeetingInfo(meeting_url="https://teams.microsoft.com/l/meetup-join/abc"), display_name="")

    def test_missing_meeting_target_fails_at_construction(self):
        with self.assertRaises(ConfigurationError):
            BotConfig(meeting_info=MeetingInfo(organizer_id="organizer-789"))


class BotConfigFromDictTests(SimpleTestCase):
    def test_full_payload(self):
        config = bot_config_from_dict(
            {
                "id": 42,
                "userId": "user-1",
                "meetingInfo": {"meetingUrl": "https://teams.microsoft.com/l/meetup-join/abc", "platform": "teams"},
                "meetingTitle": "Weekly sync",
                "startTime": "2024-05-01T10:00:00Z",
                "botDisplayName": "Notetaker",
                "heartbeatInterval": 2000,
                "automaticLeave": {"waitingRoomTimeout": 60000, "everyoneLeftTimeout": 10000},
            }
        )

        self.assertEqual(config.bot_id, 42)
        self.assertEqual(config.display_name, "Notetaker")
        self.assertEqual(config.heartbeat_interval_ms, 2000)
        self.assertEqual(config.automatic_leave.waiting_room_timeout_ms, 60000)
        self.assertEqual(config.automatic_leave.no_one_joined_timeout_ms, 600000)
        self.assertEqual(config.automatic_leave.everyone_left_timeout_ms, 10000)
        self.assertEqual(config.meeting_info.platform, "teams")
        self.assertEqual(config.start_time.year, 2024)
        self.assertIsNotNone(config.start_time.tzinfo)
        self.assertTrue(config.meeting_url.endswith("suppressPrompt=true"))

    def test_minimal_payload_uses_defaults(self):
        config = bot_config_from_dict({"meetingInfo": {"meetingId": "m", "tenantId": "t", "organizerId": "o"}})

        self.assertEqual(config.display_name, "Meeting Bot")
        self.assertEqual(config.heartbeat_interval_ms, 5000)
        self.assertEqual(config.automatic_leave.waiting_room_timeout_ms, 900000)

    def test_schema_violations_are_configuration_errors(self):
        invalid_payloads = [
            {},
            {"meetingInfo": {"meetingUrl": 123}},
            {"meetingInfo": {}, "heartbeatInterval": 0},
            {"meetingInfo": {}, "automaticLeave": {"everyoneLeftTimeout": -1}},
            {"meetingInfo": {}, "unknownField": True},
        ]
        for payload in invalid_payloads:
            with self.subTest(payload=payload):
                with self.assertRaises(ConfigurationError):
                    bot_config_from_dict(payload)

    def test_invalid_start_time_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            bot_config_from_dict({"meetingInfo": {"meetingUrl": "https://teams.microsoft.com/l/meetup-join/abc"}, "startTime": "yesterday"})


class PlatformAdapterTests(SimpleTestCase):
    def test_teams_is_the_default_platform(self):
        self.assertIs(get_platform_adapter(None), TEAMS_PLATFORM_ADAPTER)
        self.assertIs(get_platform_adapter("teams"), TEAMS_PLATFORM_ADAPTER)

    def test_unsupported_platform_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            get_platform_adapter("zoom")
