from django.db import models


class Status(models.TextChoices):
    READY_TO_DEPLOY = "READY_TO_DEPLOY", "Ready to Deploy"
    DEPLOYING = "DEPLOYING", "Deploying"
    JOINING_CALL = "JOINING_CALL", "Joining Call"
    IN_WAITING_ROOM = "IN_WAITING_ROOM", "In Waiting Room"
    IN_CALL = "IN_CALL", "In Call"
    CALL_ENDED = "CALL_ENDED", "Call Ended"
    DONE = "DONE", "Done"
    FATAL = "FATAL", "Fatal"

    @classmethod
    def terminal_states(cls):
        return [cls.DONE, cls.FATAL]

    @classmethod
    def forward_order(cls):
        """States in the order a bot passes through them. FATAL sits outside the ordering."""
        return [
            cls.READY_TO_DEPLOY,
            cls.DEPLOYING,
            cls.JOINING_CALL,
            cls.IN_WAITING_ROOM,
            cls.IN_CALL,
            cls.CALL_ENDED,
            cls.DONE,
        ]

    @classmethod
    def is_valid_transition(cls, from_state, to_state):
        if from_state in cls.terminal_states():
            return False
        if to_state == cls.FATAL:
            return True
        order = cls.forward_order()
        return order.index(to_state) > order.index(from_state)


class EventCode(models.TextChoices):
    READY_TO_DEPLOY = Status.READY_TO_DEPLOY.value, "Ready to Deploy"
    DEPLOYING = Status.DEPLOYING.value, "Deploying"
    JOINING_CALL = Status.JOINING_CALL.value, "Joining Call"
    IN_WAITING_ROOM = Status.IN_WAITING_ROOM.value, "In Waiting Room"
    IN_CALL = Status.IN_CALL.value, "In Call"
    CALL_ENDED = Status.CALL_ENDED.value, "Call Ended"
    DONE = Status.DONE.value, "Done"
    FATAL = Status.FATAL.value, "Fatal"
    PARTICIPANT_JOIN = "PARTICIPANT_JOIN", "Participant Join"
    PARTICIPANT_LEAVE = "PARTICIPANT_LEAVE", "Participant Leave"
    LOG = "LOG", "Log"

    @classmethod
    def for_status(cls, status):
        return cls(Status(status).value)


class AdmissionTypes(models.TextChoices):
    DIRECT = "direct", "Direct Join"
    WAITING_ROOM = "waiting_room", "Waiting Room"


class MeetingEndReasons(models.TextChoices):
    MEETING_NOT_LIVE = "meeting_not_live", "Meeting Status Poll Reported Not Live"
    EVERYONE_LEFT = "everyone_left", "Bot Was Alone Too Long"
    LEAVE_CONTROL_DISAPPEARED = "leave_control_disappeared", "Leave Control Disappeared"
