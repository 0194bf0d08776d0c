from __future__ import annotations

from typing import AsyncIterator
from typing import Iterable
from typing import Optional
from typing import Protocol
from typing import Sequence

from s3_archiver.models import AcknowledgedPart
from s3_archiver.models import Destination
from s3_archiver.models import ListingPage
from s3_archiver.models import ObjectRef
from s3_archiver.models import UploadSession


class StorageEndpoint(Protocol):
    """The multipart wire operations the pipeline depends on.

    Implementations raise TransientUploadError / PermanentUploadError from
    upload_part where they can tell the difference; anything else is
    classified by the retry engine.
    """

    async def create_session(self, destination: Destination) -> str: ...

    async def upload_part(self, session: UploadSession, part_number: int, payload: bytes) -> str: ...

    async def complete_session(self, session: UploadSession, parts: Sequence[AcknowledgedPart]) -> ObjectRef: ...

    async def abort_session(self, session: UploadSession) -> None: ...


class ObjectLister(Protocol):
    async def list(self, bucket: str, prefix: str, continuation_token: Optional[str] = None) -> ListingPage: ...

    async def list_all(self, bucket: str, prefix: str, exclude: Iterable[str] = ()) -> list[str]: ...


class SourceObject(Protocol):
    key: str
    size: int

    def iter_chunks(self, chunk_size: int) -> AsyncIterator[bytes]: ...

    async def close(self) -> None: ...


class ObjectSource(Protocol):
    async def open(self, bucket: str, key: str) -> SourceObject: ...
