import asyncio
import logging
from typing import Any
from typing import Optional
from typing import Sequence

from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError
from botocore.exceptions import ConnectionError as BotoConnectionError
from botocore.exceptions import HTTPClientError

from s3_archiver.errors import PermanentUploadError
from s3_archiver.errors import TransientUploadError
from s3_archiver.errors import UploadError
from s3_archiver.models import AcknowledgedPart
from s3_archiver.models import Destination
from s3_archiver.models import ObjectRef
from s3_archiver.models import UploadSession


logger = logging.getLogger(__name__)

PERMANENT_ERROR_CODES = frozenset(
    {
        "AccessDenied",
        "EntityTooLarge",
        "EntityTooSmall",
        "InvalidAccessKeyId",
        "InvalidArgument",
        "InvalidPart",
        "InvalidPartOrder",
        "InvalidRequest",
        "MalformedXML",
        "NoSuchBucket",
        "NoSuchUpload",
        "SignatureDoesNotMatch",
    }
)

TRANSIENT_ERROR_CODES = frozenset(
    {
        "InternalError",
        "RequestTimeout",
        "RequestTimeTooSkewed",
        "ServiceUnavailable",
        "SlowDown",
        "Throttling",
        "ThrottlingException",
        "RequestLimitExceeded",
    }
)


def translate_s3_error(error: Exception, operation: str, part_number: Optional[int] = None) -> UploadError:
    """Map a botocore failure onto the transient/permanent split the retry engine understands."""
    if isinstance(error, ClientError):
        err = error.response.get("Error", {}) or {}
        code = str(err.get("Code") or "")
        status = int((error.response.get("ResponseMetadata", {}) or {}).get("HTTPStatusCode") or 0)
        message = f"{operation} failed: {code or status} {err.get('Message') or ''}".strip()

        if code in PERMANENT_ERROR_CODES:
            return PermanentUploadError(message, part_number=part_number, code=code)
        if code in TRANSIENT_ERROR_CODES or status >= 500 or status == 429:
            return TransientUploadError(message, part_number=part_number, code=code or str(status))
        if 400 <= status < 500:
            return PermanentUploadError(message, part_number=part_number, code=code or str(status))
        return TransientUploadError(message, part_number=part_number, code=code or None)

    if isinstance(error, (BotoConnectionError, HTTPClientError)):
        return TransientUploadError(f"{operation} failed: {error}", part_number=part_number)

    if isinstance(error, BotoCoreError):
        # Param validation, missing credentials and friends: retrying will not help
        return PermanentUploadError(f"{operation} failed: {error}", part_number=part_number)

    return TransientUploadError(f"{operation} failed: {error}", part_number=part_number)


class S3StorageEndpoint:
    """StorageEndpoint backed by a boto3 S3 client.

    boto3 is blocking, so every call runs in a worker thread.
    """

    def __init__(self, s3_client: Any):
        self.s3 = s3_client

    async def _call(self, method: str, part_number: Optional[int] = None, **params: Any) -> dict:
        fn = getattr(self.s3, method)
        try:
            return await asyncio.to_thread(fn, **params)
        except (ClientError, BotoCoreError) as e:
            raise translate_s3_error(e, method, part_number) from e

    async def create_session(self, destination: Destination) -> str:
        resp = await self._call(
            "create_multipart_upload",
            Bucket=destination.bucket,
            Key=destination.key,
            ContentType=destination.content_type,
        )
        upload_id = resp.get("UploadId")
        if not upload_id:
            raise PermanentUploadError("create_multipart_upload returned no UploadId")
        return str(upload_id)

    async def upload_part(self, session: UploadSession, part_number: int, payload: bytes) -> str:
        resp = await self._call(
            "upload_part",
            part_number=part_number,
            Bucket=session.destination.bucket,
            Key=session.destination.key,
            UploadId=session.upload_id,
            PartNumber=part_number,
            Body=payload,
            ContentLength=len(payload),
        )
        etag = resp.get("ETag")
        if not etag:
            raise TransientUploadError(f"upload_part returned no ETag for part {part_number}", part_number=part_number)
        return str(etag)

    async def complete_session(self, session: UploadSession, parts: Sequence[AcknowledgedPart]) -> ObjectRef:
        resp = await self._call(
            "complete_multipart_upload",
            Bucket=session.destination.bucket,
            Key=session.destination.key,
            UploadId=session.upload_id,
            MultipartUpload={"Parts": [p.as_s3_part() for p in parts]},
        )
        return ObjectRef(
            bucket=resp.get("Bucket") or session.destination.bucket,
            key=resp.get("Key") or session.destination.key,
            etag=resp.get("ETag"),
            location=resp.get("Location"),
            version_id=resp.get("VersionId"),
            parts=len(parts),
            size_bytes=sum(p.size for p in parts),
        )

    async def abort_session(self, session: UploadSession) -> None:
        await self._call(
            "abort_multipart_upload",
            Bucket=session.destination.bucket,
            Key=session.destination.key,
            UploadId=session.upload_id,
        )
