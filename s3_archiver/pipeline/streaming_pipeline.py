import asyncio
import logging
from typing import AsyncIterable
from typing import Optional

from opentelemetry import trace

from s3_archiver.config import S3_MAX_PART_NUMBER
from s3_archiver.config import Config
from s3_archiver.errors import EmptyStreamError
from s3_archiver.errors import PipelineTimeoutError
from s3_archiver.models import Destination
from s3_archiver.models import ObjectRef
from s3_archiver.models import UploadSession
from s3_archiver.pipeline.coordinator import UploadCoordinator
from s3_archiver.pipeline.ledger import OutcomeLedger
from s3_archiver.pipeline.part_buffer import PartBuffer
from s3_archiver.pipeline.retry import RetryEngine
from s3_archiver.pipeline.session_manager import SessionManager
from s3_archiver.storage.base import StorageEndpoint
from s3_archiver.utils import format_bytes


logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class StreamingUploadPipeline:
    """Streams an async byte source of unknown length into one multipart object.

    Every call to ``run`` gets its own session, buffer, ledger and coordinator.
    The run either completes the session or aborts it; nothing is left dangling.
    """

    def __init__(
        self,
        endpoint: StorageEndpoint,
        *,
        min_part_size: int,
        max_in_flight_parts: int = 4,
        retry_engine: Optional[RetryEngine] = None,
        timeout_seconds: Optional[float] = None,
        max_part_number: int = S3_MAX_PART_NUMBER,
    ):
        self.endpoint = endpoint
        self.min_part_size = min_part_size
        self.max_in_flight_parts = max_in_flight_parts
        self.retry_engine = retry_engine or RetryEngine()
        self.timeout_seconds = timeout_seconds or None
        self.max_part_number = max_part_number
        self.sessions = SessionManager(endpoint, min_part_size)

    @classmethod
    def from_config(cls, endpoint: StorageEndpoint, config: Config) -> "StreamingUploadPipeline":
        return cls(
            endpoint,
            min_part_size=config.min_part_size_bytes,
            max_in_flight_parts=config.max_in_flight_parts,
            retry_engine=RetryEngine(
                max_attempts=config.part_max_attempts,
                backoff_base_ms=config.backoff_base_ms,
                backoff_max_ms=config.backoff_max_ms,
            ),
            timeout_seconds=config.pipeline_timeout_seconds,
        )

    async def run(self, destination: Destination, stream: AsyncIterable[bytes]) -> ObjectRef:
        """Upload ``stream`` to ``destination``; the deadline covers opening the session too."""
        with tracer.start_as_current_span(
            "pipeline.run", attributes={"bucket": destination.bucket, "key": destination.key}
        ) as span:
            try:
                if self.timeout_seconds:
                    try:
                        return await asyncio.wait_for(self._run(destination, stream), timeout=self.timeout_seconds)
                    except asyncio.TimeoutError as e:
                        raise PipelineTimeoutError(
                            f"s3://{destination.bucket}/{destination.key} did not finish within {self.timeout_seconds}s"
                        ) from e
                return await self._run(destination, stream)
            except (Exception, asyncio.CancelledError) as e:
                span.record_exception(e)
                span.set_status(trace.StatusCode.ERROR, str(e))
                raise
            finally:
                aclose = getattr(stream, "aclose", None)
                if aclose is not None:
                    await aclose()

    async def _run(self, destination: Destination, stream: AsyncIterable[bytes]) -> ObjectRef:
        session = await self.sessions.open(destination)
        trace.get_current_span().set_attribute("upload_id", session.upload_id)
        try:
            return await self._upload(session, stream)
        except (Exception, asyncio.CancelledError) as e:
            # A timeout reaches here as cancellation
            await self.sessions.abort(session, reason=str(e) or type(e).__name__)
            raise

    async def _upload(self, session: UploadSession, stream: AsyncIterable[bytes]) -> ObjectRef:
        ledger = OutcomeLedger()
        buffer = PartBuffer(session.min_part_size)
        coordinator = UploadCoordinator(
            self.endpoint,
            session,
            ledger,
            self.sessions,
            retry_engine=self.retry_engine,
            max_in_flight=self.max_in_flight_parts,
            max_part_number=self.max_part_number,
        )

        try:
            logger.info("Starting upload")
            async for chunk in stream:
                coordinator.raise_if_fatal()
                buffer.append(chunk)
                for part in buffer.drain_full_parts():
                    await coordinator.dispatch(part)

            final = buffer.flush_remainder()
            if final is not None:
                await coordinator.dispatch(final)
            ledger.mark_stream_complete()
            logger.info(
                f"All data produced: {format_bytes(buffer.bytes_appended)} in {buffer.parts_emitted} part(s)"
            )

            await coordinator.join()
            logger.info("Upload done")

            if ledger.dispatched == 0:
                raise EmptyStreamError(f"{session.label}: stream produced no bytes, nothing to finalize")

            return await self.sessions.complete(session, ledger)
        finally:
            await coordinator.cancel_pending()
