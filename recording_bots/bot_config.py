import logging
from dataclasses import dataclass, field
from datetime import datetime

import jsonschema

from .automatic_leave_configuration import AutomaticLeaveConfiguration
from .exceptions import ConfigurationError
from .meeting_url_utils import resolve_meeting_url

logger = logging.getLogger(__name__)

DEFAULT_BOT_DISPLAY_NAME = "Meeting Bot"
DEFAULT_HEARTBEAT_INTERVAL_MS = 5000

NON_NEGATIVE_MS = {"type": "integer", "minimum": 0}

BOT_CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "id": {"type": ["integer", "string"]},
        "userId": {"type": "string"},
        "meetingInfo": {
            "type": "object",
            "properties": {
                "meetingUrl": {"type": "string"},
                "meetingId": {"type": "string"},
                "meetingPassword": {"type": "string"},
                "organizerId": {"type": "string"},
                "tenantId": {"type": "string"},
                "messageId": {"type": "string"},
                "threadId": {"type": "string"},
                "platform": {"type": "string", "enum": ["zoom", "teams", "google"]},
            },
            "additionalProperties": False,
        },
        "meetingTitle": {"type": "string"},
        "startTime": {"type": "string"},
        "endTime": {"type": "string"},
        "botDisplayName": {"type": "string", "minLength": 1},
        "botImage": {"type": "string"},
        "heartbeatInterval": {"type": "integer", "exclusiveMinimum": 0},
        "automaticLeave": {
            "type": "object",
            "properties": {
                "waitingRoomTimeout": NON_NEGATIVE_MS,
                "noOneJoinedTimeout": NON_NEGATIVE_MS,
                "everyoneLeftTimeout": NON_NEGATIVE_MS,
            },
            "additionalProperties": False,
        },
        "callbackUrl": {"type": "string"},
        "s3Key": {"type": "string"},
        "s3BucketName": {"type": "string"},
    },
    "required": ["meetingInfo"],
    "additionalProperties": False,
}


@dataclass(frozen=True)
class MeetingInfo:
    meeting_url: str | None = None
    # Deprecated. Only consulted when meeting_url is not provided.
    meeting_id: str | None = None
    meeting_password: str | None = None
    organizer_id: str | None = None
    tenant_id: str | None = None
    message_id: str | None = None
    thread_id: str | None = None
    platform: str | None = None


@dataclass(frozen=True)
class BotConfig:
    meeting_info: MeetingInfo
    display_name: str = DEFAULT_BOT_DISPLAY_NAME
    heartbeat_interval_ms: int = DEFAULT_HEARTBEAT_INTERVAL_MS
    automatic_leave: AutomaticLeaveConfiguration = field(default_factory=AutomaticLeaveConfiguration)
    bot_id: int | str | None = None
    user_id: str | None = None
    meeting_title: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    bot_image: str | None = None
    callback_url: str | None = None
    s3_bucket_name: str | None = None
    s3_key: str | None = None
    meeting_url: str = field(init=False)

    def __post_init__(self):
        if isinstance(self.heartbeat_interval_ms, bool) or not isinstance(self.heartbeat_interval_ms, int) or self.heartbeat_interval_ms <= 0:
            raise ConfigurationError(f"heartbeat_interval_ms must be a positive integer, got {self.heartbeat_interval_ms!r}")
        if not self.display_name:
            raise ConfigurationError("display_name must not be empty")

        # Resolved exactly once, so a bad meeting target fails here and never at runtime
        object.__setattr__(self, "meeting_url", resolve_meeting_url(self.meeting_info))
        logger.info(f"Using meeting URL: {self.meeting_url}")


def _parse_datetime(value, attribute_name):
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ConfigurationError(f"{attribute_name} is not an ISO 8601 datetime: {value}", inner_exception=e)


def bot_config_from_dict(payload):
    """Builds a BotConfig from the camelCase JSON payload handed to a bot process."""
    try:
        jsonschema.validate(instance=payload, schema=BOT_CONFIG_SCHEMA)
    except jsonschema.exceptions.ValidationError as e:
        raise ConfigurationError(e.message, inner_exception=e)

    meeting_info_payload = payload["meetingInfo"]
    meeting_info = MeetingInfo(
        meeting_url=meeting_info_payload.get("meetingUrl"),
        meeting_id=meeting_info_payload.get("meetingId"),
        meeting_password=meeting_info_payload.get("meetingPassword"),
        organizer_id=meeting_info_payload.get("organizerId"),
        tenant_id=meeting_info_payload.get("tenantId"),
        message_id=meeting_info_payload.get("messageId"),
        thread_id=meeting_info_payload.get("threadId"),
        platform=meeting_info_payload.get("platform"),
    )

    automatic_leave_payload = payload.get("automaticLeave", {})
    defaults = AutomaticLeaveConfiguration()
    automatic_leave = AutomaticLeaveConfiguration(
        waiting_room_timeout_ms=automatic_leave_payload.get("waitingRoomTimeout", defaults.waiting_room_timeout_ms),
        no_one_joined_timeout_ms=automatic_leave_payload.get("noOneJoinedTimeout", defaults.no_one_joined_timeout_ms),
        everyone_left_timeout_ms=automatic_leave_payload.get("everyoneLeftTimeout", defaults.everyone_left_timeout_ms),
    )

    return BotConfig(
        meeting_info=meeting_info,
        display_name=payload.get("botDisplayName", DEFAULT_BOT_DISPLAY_NAME),
        heartbeat_interval_ms=payload.get("heartbeatInterval", DEFAULT_HEARTBEAT_INTERVAL_MS),
        automatic_leave=automatic_leave,
        bot_id=payload.get("id"),
        user_id=payload.get("userId"),
        meeting_title=payload.get("meetingTitle"),
        start_time=_parse_datetime(payload.get("startTime"), "startTime"),
        end_time=_parse_datetime(payload.get("endTime"), "endTime"),
        bot_image=payload.get("botImage"),
        callback_url=payload.get("callbackUrl"),
        s3_bucket_name=payload.get("s3BucketName"),
        s3_key=payload.get("s3Key"),
    )
