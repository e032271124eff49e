from .teams_platform import TEAMS_PLATFORM_ADAPTER, build_legacy_meeting_url

__all__ = ["TEAMS_PLATFORM_ADAPTER", "build_legacy_meeting_url"]
