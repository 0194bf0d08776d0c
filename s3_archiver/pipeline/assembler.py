import logging
import time

from opentelemetry import trace

from s3_archiver.errors import EmptyStreamError
from s3_archiver.errors import FinalizeError
from s3_archiver.errors import IncompleteUploadError
from s3_archiver.models import AcknowledgedPart
from s3_archiver.models import ObjectRef
from s3_archiver.models import UploadSession
from s3_archiver.monitoring import get_metrics_collector
from s3_archiver.pipeline.ledger import OutcomeLedger
from s3_archiver.storage.base import StorageEndpoint
from s3_archiver.utils import async_timing_context


logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class CompletionAssembler:
    """Turns a fully acknowledged ledger into the single finalize request.

    The store concatenates parts in the order given, so the list is always
    sorted by part number, never by arrival.
    """

    def __init__(self, endpoint: StorageEndpoint):
        self.endpoint = endpoint

    def ordered_parts(self, ledger: OutcomeLedger) -> list[AcknowledgedPart]:
        if ledger.stream_complete and ledger.dispatched == 0:
            raise EmptyStreamError("no parts were uploaded")
        if not ledger.ready_to_complete:
            raise IncompleteUploadError(
                f"finalize requested too early: stream_complete={ledger.stream_complete} "
                f"failed={sorted(ledger.failed)} missing={ledger.missing()}"
            )

        parts = sorted(ledger.acknowledged.values(), key=lambda p: p.part_number)
        numbers = [p.part_number for p in parts]
        if numbers != list(range(1, len(parts) + 1)):
            raise IncompleteUploadError(f"acknowledged part numbers are not dense: {numbers}")
        return parts

    async def finalize(self, session: UploadSession, ledger: OutcomeLedger) -> ObjectRef:
        parts = self.ordered_parts(ledger)
        start = time.perf_counter()
        with tracer.start_as_current_span(
            "pipeline.complete", attributes={"upload_id": session.upload_id, "parts": len(parts)}
        ) as span:
            try:
                async with async_timing_context(
                    "complete_session", extra={"upload_id": session.upload_id, "parts": len(parts)}
                ):
                    ref = await self.endpoint.complete_session(session, parts)
            except Exception as e:
                span.record_exception(e)
                span.set_status(trace.StatusCode.ERROR, str(e))
                raise FinalizeError(f"Error completing {session.label}: {e}") from e

        get_metrics_collector().record_finalize(time.perf_counter() - start, len(parts))
        if not ref.parts:
            ref = ref.model_copy(update={"parts": len(parts), "size_bytes": sum(p.size for p in parts)})
        return ref
