import asyncio
import logging
from typing import TYPE_CHECKING
from typing import Optional

from opentelemetry import trace

from s3_archiver.config import S3_MAX_PART_NUMBER
from s3_archiver.errors import ArchiverError
from s3_archiver.errors import PermanentUploadError
from s3_archiver.models import AcknowledgedPart
from s3_archiver.models import ErrorType
from s3_archiver.models import FailedPart
from s3_archiver.models import Part
from s3_archiver.models import PartOutcome
from s3_archiver.models import UploadSession
from s3_archiver.monitoring import get_metrics_collector
from s3_archiver.pipeline.ledger import OutcomeLedger
from s3_archiver.pipeline.retry import RetryEngine
from s3_archiver.pipeline.retry import classify_error
from s3_archiver.services.run_id_service import get_logger_with_run_id
from s3_archiver.storage.base import StorageEndpoint


if TYPE_CHECKING:
    from s3_archiver.pipeline.session_manager import SessionManager


logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class UploadCoordinator:
    """Runs part uploads as independent tasks, at most ``max_in_flight`` at a time.

    ``dispatch`` waits for a free slot before starting the task, which is what
    throttles the producer when uploads fall behind. A task keeps its slot
    through every retry of its part, until the part is acknowledged or the
    run fails, so payloads held for retry stay within the same bound.
    """

    def __init__(
        self,
        endpoint: StorageEndpoint,
        session: UploadSession,
        ledger: OutcomeLedger,
        session_manager: "SessionManager",
        retry_engine: Optional[RetryEngine] = None,
        max_in_flight: int = 4,
        max_part_number: int = S3_MAX_PART_NUMBER,
    ):
        if max_in_flight < 1:
            raise ValueError("max_in_flight must be >= 1")
        self.endpoint = endpoint
        self.session = session
        self.ledger = ledger
        self.session_manager = session_manager
        self.retry_engine = retry_engine or RetryEngine()
        self.max_in_flight = max_in_flight
        self.max_part_number = max_part_number
        self._slots = asyncio.Semaphore(max_in_flight)
        self._tasks: set[asyncio.Task] = set()
        self._fatal: Optional[Exception] = None
        self._active = 0
        self.peak_in_flight = 0
        self._log = get_logger_with_run_id(__name__)

    @property
    def fatal_error(self) -> Optional[Exception]:
        return self._fatal

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def fail(self, error: Exception) -> None:
        if self._fatal is None:
            self._fatal = error

    def raise_if_fatal(self) -> None:
        if self._fatal is not None:
            raise self._fatal

    async def dispatch(self, part: Part) -> "asyncio.Task[PartOutcome]":
        self.raise_if_fatal()
        if part.size == 0:
            raise ValueError(f"refusing to upload empty part {part.part_number}")
        if part.part_number > self.max_part_number:
            error = PermanentUploadError(
                f"Part number {part.part_number} exceeds the store limit of {self.max_part_number}; "
                "raise the part size",
                part_number=part.part_number,
            )
            self.fail(error)
            raise error

        await self._slots.acquire()
        if self._fatal is not None:
            self._slots.release()
            raise self._fatal

        self.session_manager.mark_uploading(self.session)
        self.ledger.record_dispatched(part.part_number)
        self._active += 1
        self.peak_in_flight = max(self.peak_in_flight, self._active)

        task = asyncio.create_task(self._run_part(part), name=f"upload-part-{part.part_number}")
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        self._active -= 1
        self._slots.release()
        if not task.cancelled() and task.exception() is not None:
            self.fail(task.exception())

    async def _run_part(self, part: Part) -> PartOutcome:
        try:
            return await self.retry_engine.run(part, self._attempt, should_stop=lambda: self._fatal is not None)
        except ArchiverError as e:
            self._log.error(f"Giving up on part {part.part_number}: {e}")
            self.fail(e)
            return self.ledger.failed[part.part_number]

    async def _attempt(self, part: Part, attempt: int) -> PartOutcome:
        n = part.part_number
        metrics = get_metrics_collector()
        if attempt > 1:
            self.ledger.mark_retrying(n)
        self._log.info(f"Uploading part {n}" + (f" (attempt {attempt})" if attempt > 1 else ""))
        metrics.record_part_started()

        with tracer.start_as_current_span(
            "pipeline.upload_part",
            attributes={"part_number": n, "size_bytes": part.size, "attempt": attempt},
        ) as span:
            try:
                etag = await self.endpoint.upload_part(self.session, n, part.payload)
            except asyncio.CancelledError:
                metrics.record_part_upload(success=False, attempt=attempt, error_type="cancelled")
                raise
            except Exception as e:
                error_type = classify_error(e)
                span.record_exception(e)
                span.set_status(trace.StatusCode.ERROR, str(e))
                self._log.warning(f"Error uploading part {n} (attempt {attempt}, {error_type.value}): {e}")
                failed = FailedPart(
                    part_number=n,
                    payload=part.payload,
                    error=str(e) or type(e).__name__,
                    error_type=error_type,
                    attempts=attempt,
                )
                self.ledger.record_failure(failed)
                metrics.record_part_upload(success=False, attempt=attempt, error_type=error_type.value)
                if error_type == ErrorType.PERMANENT:
                    self.fail(
                        e
                        if isinstance(e, PermanentUploadError)
                        else PermanentUploadError(f"Part {n} failed permanently: {e}", part_number=n)
                    )
                return failed

        ack = AcknowledgedPart(part_number=n, etag=etag, size=part.size, attempts=attempt)
        self.ledger.record_success(ack)
        metrics.record_part_upload(success=True, size_bytes=part.size, attempt=attempt)
        self._log.info(f"Uploaded part {n}")
        return ack

    async def join(self) -> None:
        """Wait for every outstanding upload, or until the run turns fatal.

        Tasks still running when a fatal error surfaces are left for
        ``cancel_pending``.
        """
        while self._tasks:
            self.raise_if_fatal()
            await asyncio.wait(list(self._tasks), return_when=asyncio.FIRST_COMPLETED)
        self.raise_if_fatal()

    async def cancel_pending(self) -> None:
        if not self._tasks:
            return
        tasks = list(self._tasks)
        logger.info(f"Cancelling {len(tasks)} in-flight part upload(s)")
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
