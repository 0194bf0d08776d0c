from __future__ import annotations

import asyncio
import logging
from typing import Any
from typing import AsyncIterator
from typing import Iterable
from typing import Optional

from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError

from s3_archiver.errors import EnumerationError
from s3_archiver.models import ListingPage


logger = logging.getLogger(__name__)


class S3ObjectLister:
    """Paginated prefix listing over list_objects_v2."""

    def __init__(self, s3_client: Any, page_size: int = 1000):
        self.s3 = s3_client
        self.page_size = page_size

    async def list(self, bucket: str, prefix: str, continuation_token: Optional[str] = None) -> ListingPage:
        params: dict[str, Any] = {"Bucket": bucket, "Prefix": prefix, "MaxKeys": self.page_size}
        if continuation_token:
            params["ContinuationToken"] = continuation_token
        try:
            resp = await asyncio.to_thread(self.s3.list_objects_v2, **params)
        except (ClientError, BotoCoreError) as e:
            raise EnumerationError(f"Error getting object list for s3://{bucket}/{prefix}: {e}") from e

        keys = [str(obj["Key"]) for obj in resp.get("Contents", []) or []]
        next_token = resp.get("NextContinuationToken") if resp.get("IsTruncated") else None
        if resp.get("IsTruncated") and not next_token:
            raise EnumerationError(f"Truncated listing for s3://{bucket}/{prefix} without a continuation token")
        return ListingPage(keys=keys, next_token=next_token)

    async def iter_keys(self, bucket: str, prefix: str, exclude: Iterable[str] = ()) -> AsyncIterator[str]:
        """Yield every key under prefix in listing order, skipping directory markers and excluded keys."""
        excluded = set(exclude)
        token: Optional[str] = None
        pages = 0
        while True:
            page = await self.list(bucket, prefix, token)
            pages += 1
            for key in page.keys:
                if key.endswith("/") or key in excluded:
                    continue
                yield key
            if page.next_token is None:
                break
            token = page.next_token
        logger.debug(f"Listed s3://{bucket}/{prefix} in {pages} page(s)")

    async def list_all(self, bucket: str, prefix: str, exclude: Iterable[str] = ()) -> list[str]:
        return [key async for key in self.iter_keys(bucket, prefix, exclude=exclude)]
