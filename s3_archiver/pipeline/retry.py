import asyncio
import logging
import random
from typing import Awaitable
from typing import Callable

from s3_archiver.errors import PartExhaustedError
from s3_archiver.errors import PermanentUploadError
from s3_archiver.errors import TransientUploadError
from s3_archiver.models import ErrorType
from s3_archiver.models import FailedPart
from s3_archiver.models import Part
from s3_archiver.models import PartOutcome
from s3_archiver.monitoring import get_metrics_collector


logger = logging.getLogger(__name__)


def classify_error(error: BaseException) -> ErrorType:
    """Classify error as transient, permanent, or unknown."""
    if isinstance(error, PermanentUploadError):
        return ErrorType.PERMANENT
    if isinstance(error, (TransientUploadError, TimeoutError, ConnectionError)):
        return ErrorType.TRANSIENT

    err_str = str(error).lower()
    err_type = type(error).__name__.lower()

    if any(
        keyword in err_str
        for keyword in ["malformed", "invalid", "nosuchupload", "no such upload", "access denied", "entitytoo"]
    ):
        return ErrorType.PERMANENT

    if any(
        keyword in err_str
        for keyword in [
            "timeout",
            "timed out",
            "connection",
            "network",
            "503",
            "502",
            "504",
            "unavailable",
            "slow down",
            "slowdown",
            "throttl",
            "rate limit",
        ]
    ) or any(keyword in err_type for keyword in ["connectionerror", "timeouterror", "httperror"]):
        return ErrorType.TRANSIENT

    return ErrorType.UNKNOWN


def compute_backoff_ms(attempt: int, base_ms: int = 500, max_ms: int = 60000) -> float:
    """Compute exponential backoff with jitter."""
    exp_backoff = base_ms * (2 ** (max(attempt, 1) - 1))
    jitter = random.uniform(0, exp_backoff * 0.1)
    return float(min(exp_backoff + jitter, max_ms))


class RetryEngine:
    """Retries one part until it is acknowledged or runs out of attempts.

    A failed part is re-sent with its original part number and payload as soon
    as its backoff elapses, while the caller keeps producing other parts. The
    caller holds the part's in-flight slot for the whole loop, so payloads kept
    for retry count against the in-flight bound.
    Unknown errors are retried like transient ones; the attempt budget bounds them.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        backoff_base_ms: int = 500,
        backoff_max_ms: int = 60000,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.max_attempts = max_attempts
        self.backoff_base_ms = backoff_base_ms
        self.backoff_max_ms = backoff_max_ms
        self._sleep = sleep

    def check_budget(self, failed: FailedPart) -> None:
        if failed.error_type == ErrorType.PERMANENT:
            raise PermanentUploadError(
                f"Part {failed.part_number} failed permanently: {failed.error}", part_number=failed.part_number
            )
        if failed.attempts >= self.max_attempts:
            raise PartExhaustedError(failed.part_number, failed.attempts, failed.error)

    async def run(
        self,
        part: Part,
        attempt_upload: Callable[[Part, int], Awaitable[PartOutcome]],
        should_stop: Callable[[], bool] = lambda: False,
    ) -> PartOutcome:
        """Upload ``part``, retrying failures within budget.

        Raises PartExhaustedError or PermanentUploadError when the part cannot
        succeed. Returns the last FailedPart unretried if ``should_stop`` turns true.
        """
        outcome = await attempt_upload(part, 1)
        while isinstance(outcome, FailedPart):
            self.check_budget(outcome)
            if should_stop():
                return outcome

            attempt = outcome.attempts + 1
            delay_ms = compute_backoff_ms(outcome.attempts, self.backoff_base_ms, self.backoff_max_ms)
            logger.info(
                f"Retrying part {outcome.part_number} in {delay_ms / 1000.0:.2f}s "
                f"(attempt {attempt}/{self.max_attempts}, last_error={outcome.error})"
            )
            await self._sleep(delay_ms / 1000.0)
            if should_stop():
                return outcome

            get_metrics_collector().record_part_retry(attempt)
            outcome = await attempt_upload(outcome.to_part(), attempt)
        return outcome
