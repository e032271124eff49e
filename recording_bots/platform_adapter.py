from dataclasses import dataclass

from .exceptions import ConfigurationError


@dataclass(frozen=True)
class PlatformAdapter:
    """Selectors that parametrize the generic join and liveness logic for one meeting platform.

    Selectors starting with // are XPath expressions, all others are CSS selectors.
    """

    name: str
    display_name_input_selector: str
    join_button_selector: str
    leave_button_selector: str
    participants_button_selector: str
    participants_list_selector: str
    participant_name_selector: str
    join_on_web_selector: str | None = None
    mute_button_selector: str | None = None
    # Any of these being present means the meeting is over, even if the leave control lingers
    meeting_ended_selectors: tuple[str, ...] = ()


def get_platform_adapter(platform_name):
    if platform_name in (None, "", "teams"):
        from .teams_bot_adapter.teams_platform import TEAMS_PLATFORM_ADAPTER

        return TEAMS_PLATFORM_ADAPTER

    raise ConfigurationError(f"Unsupported meeting platform: {platform_name}")
