from dataclasses import dataclass, fields

from .exceptions import ConfigurationError


@dataclass(frozen=True)
class AutomaticLeaveConfiguration:
    """Specifies conditions under which the bot will automatically leave a meeting.

    Attributes:
        waiting_room_timeout_ms: Milliseconds to wait to be admitted when the bot lands in the waiting room
        no_one_joined_timeout_ms: Milliseconds to wait for anyone to join. Carried for callers, not enforced by the lifecycle controller.
        everyone_left_timeout_ms: Milliseconds the bot may stay alone in the meeting (at most one roster entry) before leaving
    """

    waiting_room_timeout_ms: int = 900000
    no_one_joined_timeout_ms: int = 600000
    everyone_left_timeout_ms: int = 30000

    def __post_init__(self):
        for field in fields(self):
            value = getattr(self, field.name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigurationError(f"{field.name} must be a non-negative integer number of milliseconds, got {value!r}")
