from recording_bots.platform_adapter import PlatformAdapter

LEAVE_BUTTON_SELECTOR = ", ".join(
    [
        "button#hangup-button",
        'button[data-inp="hangup-button"]',
        'button[aria-label="Leave"]',
        '[data-tid="call-leave-button"]',
        'button[aria-label="Leave (Ctrl+Shift+H)"]',
        'button[aria-label="Leave (⌘+Shift+H)"]',
    ]
)

PARTICIPANT_NAME_SELECTOR = ", ".join(
    [
        '[role="tree"] [data-tid^="attendeesInMeeting-"] span[title]',
        '[role="tree"] [data-tid^="participantsInCall-"] span[title]',
    ]
)

TEAMS_PLATFORM_ADAPTER = PlatformAdapter(
    name="teams",
    join_on_web_selector='[data-tid="joinOnWeb"]',
    display_name_input_selector='[data-tid="prejoin-display-name-input"]',
    mute_button_selector='[data-tid="toggle-mute"]',
    join_button_selector='[data-tid="prejoin-join-button"]',
    leave_button_selector=LEAVE_BUTTON_SELECTOR,
    participants_button_selector='[aria-label="People"]',
    participants_list_selector='[role="tree"]',
    participant_name_selector=PARTICIPANT_NAME_SELECTOR,
    meeting_ended_selectors=(
        '[data-tid="calling-retry-rejoinbutton"]',
        '//*[contains(text(), "The meeting has ended")]',
        '//*[contains(text(), "You\'ve been removed from this meeting")]',
    ),
)


def build_legacy_meeting_url(meeting_id, tenant_id, organizer_id):
    return f"https://teams.microsoft.com/v2/?meetingjoin=true#/l/meetup-join/19:meeting_{meeting_id}@thread.v2/0?context=%7b%22Tid%22%3a%22{tenant_id}%22%2c%22Oid%22%3a%22{organizer_id}%22%7d&anon=true"
