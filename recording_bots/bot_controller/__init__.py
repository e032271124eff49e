from .bot_controller import BotLifecycleController, BotResources
from .join_sequencer import JoinOutcome, JoinSequencer
from .participant_tracker import ParticipantTracker
from .periodic_timer import PeriodicTimer
from .recording_session import RecordingSession, WavFileSink
from .retry_policy import RetryOutcome, RetryPolicy

__all__ = [
    "BotLifecycleController",
    "BotResources",
    "JoinOutcome",
    "JoinSequencer",
    "ParticipantTracker",
    "PeriodicTimer",
    "RecordingSession",
    "RetryOutcome",
    "RetryPolicy",
    "WavFileSink",
]
