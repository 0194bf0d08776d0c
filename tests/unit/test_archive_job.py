import io
import zipfile

import pytest

from s3_archiver.archive_job import ArchiveJob
from s3_archiver.config import Config
from s3_archiver.errors import EnumerationError
from tests.unit.mocks.fake_source import FakeObjectLister
from tests.unit.mocks.fake_source import FakeObjectSource
from tests.unit.mocks.mock_storage_endpoint import MockStorageEndpoint


@pytest.fixture
def config() -> Config:
    return Config(
        min_part_size_bytes=64,
        max_in_flight_parts=2,
        part_max_attempts=3,
        backoff_base_ms=1,
        backoff_max_ms=2,
        read_chunk_size_bytes=32,
        zip_compression="stored",
    )


@pytest.mark.asyncio
async def test_prefix_is_zipped_into_destination(config):
    objects = {
        "exports/a.csv": b"a" * 150,
        "exports/b.csv": b"b" * 90,
        "exports/exports.zip": b"previous archive",
        "other/c.csv": b"c",
    }
    endpoint = MockStorageEndpoint()
    job = ArchiveJob(config, FakeObjectLister(list(objects)), FakeObjectSource(objects), endpoint)

    ref = await job.run("bucket", "exports/", "exports.zip")

    assert ref is not None
    assert ref.key == "exports/exports.zip"
    assert endpoint.created[0].key == "exports/exports.zip"
    assert endpoint.created[0].content_type == "application/zip"
    assert len(endpoint.complete_calls[0]) > 1
    with zipfile.ZipFile(io.BytesIO(endpoint.assembled())) as zf:
        assert zf.namelist() == ["exports/a.csv", "exports/b.csv"]
        assert zf.read("exports/a.csv") == objects["exports/a.csv"]


@pytest.mark.asyncio
async def test_empty_prefix_produces_empty_archive(config):
    endpoint = MockStorageEndpoint()
    job = ArchiveJob(config, FakeObjectLister([]), FakeObjectSource({}), endpoint)

    ref = await job.run("bucket", "empty/", "empty.zip")

    assert ref is not None
    with zipfile.ZipFile(io.BytesIO(endpoint.assembled())) as zf:
        assert zf.namelist() == []


@pytest.mark.asyncio
async def test_skip_empty_opens_no_session(config):
    endpoint = MockStorageEndpoint()
    job = ArchiveJob(config, FakeObjectLister([]), FakeObjectSource({}), endpoint)

    ref = await job.run("bucket", "empty/", "empty.zip", skip_empty=True)

    assert ref is None
    assert endpoint.created == []


@pytest.mark.asyncio
async def test_listing_failure_opens_no_session(config):
    class FailingLister(FakeObjectLister):
        async def list_all(self, bucket, prefix, exclude=()):
            raise EnumerationError("Error getting object list")

    endpoint = MockStorageEndpoint()
    job = ArchiveJob(config, FailingLister([]), FakeObjectSource({}), endpoint)

    with pytest.raises(EnumerationError):
        await job.run("bucket", "exports/", "exports.zip")

    assert endpoint.created == []
    assert endpoint.abort_calls == []
