import asyncio
import logging

from recording_bots.models import EventCode

logger = logging.getLogger(__name__)

DEFAULT_EVERYONE_LEFT_TIMEOUT_MS = 30000


def normalize_participant_names(names):
    return frozenset(name.strip() for name in names if name and name.strip())


class ParticipantTracker:
    """
    Keeps the roster snapshot and decides when the bot has been alone for too long.

    The bot counts as alone whenever the roster has at most one entry. Its own display name is not
    matched, because the platform does not reliably list the bot. All state is mutated from tick(),
    which the controller never runs concurrently with itself.
    """

    def __init__(self, *, surface, participant_name_selector, everyone_left_timeout_ms, notifier, clock):
        self.surface = surface
        self.participant_name_selector = participant_name_selector
        self.everyone_left_timeout_ms = everyone_left_timeout_ms or DEFAULT_EVERYONE_LEFT_TIMEOUT_MS
        self.notifier = notifier
        self.clock = clock

        self.participants = frozenset()
        self.alone_since = None
        self.leave_now = asyncio.Event()

    @property
    def participant_count(self):
        return len(self.participants)

    async def tick(self):
        try:
            names = await self.surface.query_all(self.participant_name_selector)
        except Exception as e:
            # No snapshot this tick. The alone timer is neither reset nor advanced.
            logger.info(f"Error getting participants: {e}")
            return None

        snapshot = normalize_participant_names(names)
        previous = self.participants
        self.participants = snapshot

        for name in sorted(snapshot - previous):
            await self.notifier.emit(EventCode.PARTICIPANT_JOIN, {"name": name})
        for name in sorted(previous - snapshot):
            await self.notifier.emit(EventCode.PARTICIPANT_LEAVE, {"name": name})

        if len(snapshot) != len(previous):
            logger.info(f"Participant count changed: {len(previous)} -> {len(snapshot)}")

        self.update_alone_timer()
        return snapshot

    def update_alone_timer(self):
        if len(self.participants) > 1:
            if self.alone_since is not None:
                logger.info("Bot is no longer alone in the meeting, resetting timer")
            self.alone_since = None
            return

        if self.alone_since is None:
            logger.info("Bot is now alone in the meeting, starting timer")
            self.alone_since = self.clock.now()
            return

        alone_ms = (self.clock.now() - self.alone_since) * 1000
        logger.info(f"Bot is alone for {alone_ms / 1000} seconds")
        if alone_ms > self.everyone_left_timeout_ms and not self.leave_now.is_set():
            logger.info("No other participants for too long, requesting to leave the meeting")
            self.leave_now.set()
