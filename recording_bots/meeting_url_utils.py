import logging
from urllib.parse import urlsplit, urlunsplit

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

SUPPRESS_PROMPT_PARAMETER = "suppressPrompt"
SUPPRESS_PROMPT_QUERY = f"{SUPPRESS_PROMPT_PARAMETER}=true"


def ensure_suppress_prompt(url):
    """
    Returns `url` with suppressPrompt=true in its query string.

    A URL that already contains suppressPrompt=true anywhere is returned untouched. Any other
    suppressPrompt value in the query is replaced rather than duplicated. The remaining query
    parameters are kept byte for byte, since Teams join links carry pre-encoded JSON in them.
    """
    if SUPPRESS_PROMPT_QUERY in url:
        return url

    parts = urlsplit(url)
    query_parameters = [parameter for parameter in parts.query.split("&") if parameter and parameter.split("=", 1)[0] != SUPPRESS_PROMPT_PARAMETER]
    query_parameters.append(SUPPRESS_PROMPT_QUERY)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "&".join(query_parameters), parts.fragment))


def append_suppress_prompt(url):
    """
    Appends suppressPrompt=true to the very end of `url`.

    The legacy join link keeps its join parameters inside the fragment route, which is where the
    Teams web client reads them from, so the flag has to follow them there.
    """
    if SUPPRESS_PROMPT_QUERY in url:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{SUPPRESS_PROMPT_QUERY}"


def meeting_info_has_legacy_triple(meeting_info):
    return bool(meeting_info.meeting_id and meeting_info.tenant_id and meeting_info.organizer_id)


def resolve_meeting_url(meeting_info):
    if meeting_info.meeting_url:
        if not urlsplit(meeting_info.meeting_url).scheme:
            raise ConfigurationError(f"meeting_url is not an absolute URL: {meeting_info.meeting_url}")
        return ensure_suppress_prompt(meeting_info.meeting_url)

    if meeting_info_has_legacy_triple(meeting_info):
        from .teams_bot_adapter.teams_platform import build_legacy_meeting_url

        logger.info("meeting_url not provided, building the join URL from the deprecated meeting_id, tenant_id and organizer_id fields")
        return append_suppress_prompt(build_legacy_meeting_url(meeting_info.meeting_id, meeting_info.tenant_id, meeting_info.organizer_id))

    raise ConfigurationError("Either meeting_url or (meeting_id, tenant_id, and organizer_id) must be provided")
