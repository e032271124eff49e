class BotException(Exception):
    def __init__(self, message, step=None, inner_exception=None):
        super().__init__(message)
        self.step = step
        self.inner_exception = inner_exception


# Missing or invalid meeting target / settings. Raised at construction, never at runtime.
class ConfigurationError(BotException):
    pass


# A required join step exhausted its retries
class JoinConfigurationError(BotException):
    pass


# Distinct from ElementTimeout so operators can tell "stuck in lobby" from "stuck loading"
class WaitingRoomTimeoutError(BotException):
    def __init__(self, message="Timed out waiting to be admitted to the meeting", step=None, inner_exception=None, admission_type=None, timeout_ms=None):
        super().__init__(message, step, inner_exception)
        self.admission_type = admission_type
        self.timeout_ms = timeout_ms


class ElementTimeout(BotException):
    def __init__(self, message, step=None, inner_exception=None, selector=None):
        super().__init__(message, step, inner_exception)
        self.selector = selector


class UiCouldNotClickElementException(BotException):
    pass


class RecordingNotReadyError(BotException):
    pass


# Always recovered locally by the controller, kept for reporting
class TeardownStepError(BotException):
    pass
