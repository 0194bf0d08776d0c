import asyncio
from typing import Sequence

from s3_archiver.models import AcknowledgedPart
from s3_archiver.models import Destination
from s3_archiver.models import ObjectRef
from s3_archiver.models import UploadSession


class MockStorageEndpoint:
    """Configurable in-memory StorageEndpoint used in unit tests.

    ``failures`` maps a part number to the exceptions its next upload attempts
    raise, in order; once the list is used up the part succeeds.
    """

    def __init__(
        self,
        upload_id: str = "upload-1",
        failures: dict[int, list[Exception]] | None = None,
        upload_delay: float = 0.0,
        create_delay: float = 0.0,
        create_error: Exception | None = None,
        complete_error: Exception | None = None,
        abort_error: Exception | None = None,
    ) -> None:
        self.upload_id = upload_id
        self.failures = {n: list(errs) for n, errs in (failures or {}).items()}
        self.upload_delay = upload_delay
        self.create_delay = create_delay
        self.create_error = create_error
        self.complete_error = complete_error
        self.abort_error = abort_error

        self.created: list[Destination] = []
        self.upload_calls: list[tuple[int, int]] = []
        self.stored: dict[int, bytes] = {}
        self.complete_calls: list[list[tuple[int, str]]] = []
        self.abort_calls: list[str] = []
        self.in_flight = 0
        self.peak_in_flight = 0

    async def create_session(self, destination: Destination) -> str:
        self.created.append(destination)
        await asyncio.sleep(self.create_delay)
        if self.create_error is not None:
            raise self.create_error
        return self.upload_id

    async def upload_part(self, session: UploadSession, part_number: int, payload: bytes) -> str:
        self.upload_calls.append((part_number, len(payload)))
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.upload_delay)
            pending = self.failures.get(part_number)
            if pending:
                raise pending.pop(0)
            self.stored[part_number] = payload
            return f'"etag-{part_number}"'
        finally:
            self.in_flight -= 1

    async def complete_session(self, session: UploadSession, parts: Sequence[AcknowledgedPart]) -> ObjectRef:
        self.complete_calls.append([(p.part_number, p.etag) for p in parts])
        if self.complete_error is not None:
            raise self.complete_error
        return ObjectRef(
            bucket=session.destination.bucket,
            key=session.destination.key,
            etag='"final-etag"',
            parts=len(parts),
            size_bytes=sum(p.size for p in parts),
        )

    async def abort_session(self, session: UploadSession) -> None:
        self.abort_calls.append(session.upload_id)
        if self.abort_error is not None:
            raise self.abort_error

    def attempts_for(self, part_number: int) -> int:
        return sum(1 for n, _ in self.upload_calls if n == part_number)

    def assembled(self) -> bytes:
        """Bytes of the object as the store would concatenate them on the last complete call."""
        if not self.complete_calls:
            return b""
        return b"".join(self.stored[n] for n, _ in self.complete_calls[-1])
