import os
from typing import Generator

import pytest

from s3_archiver.models import Destination
from s3_archiver.pipeline import RetryEngine
from tests.unit.mocks.mock_storage_endpoint import MockStorageEndpoint


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep developer .env / shell settings from leaking into config defaults."""
    for name in list(os.environ):
        if name.startswith("S3_ARCHIVER_") or name in ("LOKI_ENABLED", "LOKI_URL", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)
    yield


async def no_sleep(_seconds: float) -> None:
    return None


@pytest.fixture
def destination() -> Destination:
    return Destination(bucket="archive-bucket", key="reports/2024/reports.zip")


@pytest.fixture
def endpoint() -> MockStorageEndpoint:
    return MockStorageEndpoint()


@pytest.fixture
def retry_engine() -> RetryEngine:
    return RetryEngine(max_attempts=3, backoff_base_ms=1, backoff_max_ms=5, sleep=no_sleep)
