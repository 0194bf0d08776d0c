import logging
from typing import Optional

from s3_archiver.errors import InvalidSessionTransition
from s3_archiver.models import Destination
from s3_archiver.models import ObjectRef
from s3_archiver.models import SessionState
from s3_archiver.models import UploadSession
from s3_archiver.monitoring import get_metrics_collector
from s3_archiver.pipeline.assembler import CompletionAssembler
from s3_archiver.pipeline.ledger import OutcomeLedger
from s3_archiver.storage.base import StorageEndpoint


logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.CREATED: frozenset({SessionState.UPLOADING, SessionState.ABORTED}),
    SessionState.UPLOADING: frozenset({SessionState.COMPLETING, SessionState.ABORTED}),
    SessionState.COMPLETING: frozenset({SessionState.COMPLETED, SessionState.ABORTED}),
    SessionState.COMPLETED: frozenset(),
    SessionState.ABORTED: frozenset(),
}


class SessionManager:
    """Owns the create -> upload -> complete | abort lifecycle of a multipart session."""

    def __init__(
        self,
        endpoint: StorageEndpoint,
        min_part_size: int,
        assembler: Optional[CompletionAssembler] = None,
    ):
        self.endpoint = endpoint
        self.min_part_size = min_part_size
        self.assembler = assembler or CompletionAssembler(endpoint)

    async def open(self, destination: Destination) -> UploadSession:
        logger.info(f"Creating upload request for s3://{destination.bucket}/{destination.key}")
        upload_id = await self.endpoint.create_session(destination)
        session = UploadSession(destination=destination, upload_id=upload_id, min_part_size=self.min_part_size)
        logger.info(f"Upload created with ID: {upload_id}")
        return session

    def transition(self, session: UploadSession, target: SessionState) -> None:
        if target not in ALLOWED_TRANSITIONS[session.state]:
            raise InvalidSessionTransition(session.upload_id, session.state.value, target.value)
        logger.debug(f"Session {session.upload_id}: {session.state.value} -> {target.value}")
        session.state = target

    def mark_uploading(self, session: UploadSession) -> None:
        if session.state == SessionState.CREATED:
            self.transition(session, SessionState.UPLOADING)

    async def complete(self, session: UploadSession, ledger: OutcomeLedger) -> ObjectRef:
        self.transition(session, SessionState.COMPLETING)
        ref = await self.assembler.finalize(session, ledger)
        self.transition(session, SessionState.COMPLETED)
        get_metrics_collector().record_session(SessionState.COMPLETED.value)
        logger.info(f"Upload completed: s3://{ref.bucket}/{ref.key} parts={ref.parts} etag={ref.etag}")
        return ref

    async def abort(self, session: UploadSession, reason: str = "") -> None:
        """Release server-side parts. Aborting an aborted session is a no-op."""
        if session.state == SessionState.ABORTED:
            return
        self.transition(session, SessionState.ABORTED)
        logger.warning(f"Aborting {session.label}" + (f": {reason}" if reason else ""))
        try:
            await self.endpoint.abort_session(session)
        except Exception:
            # The run is already failing; the original error is what the caller needs to see
            logger.exception(f"Abort call failed for {session.label}; orphaned parts may remain")
        get_metrics_collector().record_session(SessionState.ABORTED.value)
