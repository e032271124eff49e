import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class RetryOutcome:
    succeeded: bool
    attempts: int
    result: Any = None
    exception: Exception | None = None


class RetryPolicy:
    """Bounded-attempt execution of a fallible async operation.

    An attempt fails when the operation raises. Whether exhaustion is fatal is up to the caller, so
    execute() never raises on its own and never sleeps after the final attempt.
    """

    DEFAULT_MAX_ATTEMPTS = 3
    DEFAULT_RETRY_DELAY_MS = 5000

    def __init__(self, clock, max_attempts=DEFAULT_MAX_ATTEMPTS, retry_delay_ms=DEFAULT_RETRY_DELAY_MS):
        self.clock = clock
        self.max_attempts = max_attempts
        self.retry_delay_ms = retry_delay_ms

    async def execute(self, operation, description, max_attempts=None, retry_delay_ms=None) -> RetryOutcome:
        max_attempts = max_attempts or self.max_attempts
        retry_delay_ms = self.retry_delay_ms if retry_delay_ms is None else retry_delay_ms

        last_exception = None
        for attempt in range(1, max_attempts + 1):
            try:
                logger.info(f"{description} (attempt {attempt}/{max_attempts})...")
                result = await operation()
                logger.info(f"Successfully completed: {description}")
                return RetryOutcome(succeeded=True, attempts=attempt, result=result)
            except Exception as e:
                last_exception = e
                logger.info(f"Failed: {description} (attempt {attempt}/{max_attempts}). Error: {e}")
                if attempt == max_attempts:
                    break
                logger.info(f"Retrying in {retry_delay_ms / 1000} seconds...")
                await self.clock.sleep(retry_delay_ms / 1000)

        return RetryOutcome(succeeded=False, attempts=max_attempts, exception=last_exception)
