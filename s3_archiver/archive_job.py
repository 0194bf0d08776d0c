import logging
from typing import Any
from typing import Optional

from s3_archiver.archive import ZipStreamProducer
from s3_archiver.config import Config
from s3_archiver.models import Destination
from s3_archiver.models import ObjectRef
from s3_archiver.models import ZipCompression
from s3_archiver.pipeline import StreamingUploadPipeline
from s3_archiver.storage.base import ObjectLister
from s3_archiver.storage.base import ObjectSource
from s3_archiver.storage.base import StorageEndpoint
from s3_archiver.storage.client import make_s3_client
from s3_archiver.storage.s3_endpoint import S3StorageEndpoint
from s3_archiver.storage.s3_lister import S3ObjectLister
from s3_archiver.storage.s3_source import S3ObjectSource
from s3_archiver.utils import async_timing_context


logger = logging.getLogger(__name__)


class ArchiveJob:
    """Lists a prefix, zips every object under it and streams the archive back into the bucket."""

    def __init__(
        self,
        config: Config,
        lister: ObjectLister,
        source: ObjectSource,
        endpoint: StorageEndpoint,
    ):
        self.config = config
        self.lister = lister
        self.source = source
        self.endpoint = endpoint

    @classmethod
    def from_s3_client(cls, config: Config, s3_client: Any) -> "ArchiveJob":
        return cls(
            config,
            lister=S3ObjectLister(s3_client, page_size=config.list_page_size),
            source=S3ObjectSource(s3_client),
            endpoint=S3StorageEndpoint(s3_client),
        )

    async def run(
        self,
        bucket: str,
        directory: str,
        zip_file_name: str,
        skip_empty: bool = False,
    ) -> Optional[ObjectRef]:
        destination = Destination(
            bucket=bucket,
            key=f"{directory}{zip_file_name}",
            content_type=self.config.content_type,
        )

        # Listing happens before the session exists so an enumeration failure leaves nothing to clean up
        logger.info(f"Getting files from {bucket}/{directory}")
        async with async_timing_context("list_objects", extra={"bucket": bucket, "prefix": directory}):
            keys = await self.lister.list_all(bucket, directory, exclude=[destination.key])
        logger.info(f"Found {len(keys)} files")

        if not keys and skip_empty:
            logger.warning(f"No objects under {bucket}/{directory}; skipping archive")
            return None

        producer = ZipStreamProducer(
            self.source,
            compression=ZipCompression(self.config.zip_compression),
            read_chunk_size=self.config.read_chunk_size_bytes,
        )
        pipeline = StreamingUploadPipeline.from_config(self.endpoint, self.config)
        return await pipeline.run(destination, producer.stream(bucket, keys))


async def archive_prefix(
    bucket: str,
    directory: str,
    zip_file_name: str,
    *,
    config: Config,
    s3_client: Any = None,
    skip_empty: bool = False,
) -> Optional[ObjectRef]:
    client = s3_client if s3_client is not None else make_s3_client(config)
    job = ArchiveJob.from_s3_client(config, client)
    return await job.run(bucket, directory, zip_file_name, skip_empty=skip_empty)
