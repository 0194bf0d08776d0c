import asyncio
import contextlib
import logging
from datetime import datetime
from typing import Any
from typing import AsyncIterator
from typing import Optional

from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError

from s3_archiver.errors import SourceReadError


logger = logging.getLogger(__name__)


class S3SourceObject:
    def __init__(self, key: str, size: int, last_modified: Optional[datetime], body: Any):
        self.key = key
        self.size = size
        self.last_modified = last_modified
        self._body = body

    async def iter_chunks(self, chunk_size: int) -> AsyncIterator[bytes]:
        """Read the body a chunk at a time in a worker thread; never holds the whole object."""
        while True:
            try:
                chunk = await asyncio.to_thread(self._body.read, chunk_size)
            except (ClientError, BotoCoreError) as e:
                raise SourceReadError(f"Error reading {self.key}: {e}") from e
            if not chunk:
                break
            yield chunk

    async def close(self) -> None:
        with contextlib.suppress(Exception):
            await asyncio.to_thread(self._body.close)


class S3ObjectSource:
    def __init__(self, s3_client: Any):
        self.s3 = s3_client

    async def open(self, bucket: str, key: str) -> S3SourceObject:
        try:
            resp = await asyncio.to_thread(self.s3.get_object, Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise SourceReadError(f"Error getting s3://{bucket}/{key}: {e}") from e
        return S3SourceObject(
            key=key,
            size=int(resp.get("ContentLength") or 0),
            last_modified=resp.get("LastModified"),
            body=resp["Body"],
        )
