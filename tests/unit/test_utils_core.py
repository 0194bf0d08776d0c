import dataclasses

import pytest

from s3_archiver.utils import async_timing_context
from s3_archiver.utils import env
from s3_archiver.utils import format_bytes
from s3_archiver.utils import to_bool


@pytest.mark.parametrize(
    "size,expected",
    [(0, "0 B"), (1023, "1023 B"), (1024, "1.0 KiB"), (10 * 1024 * 1024, "10.0 MiB"), (3 * 1024**3, "3.0 GiB")],
)
def test_format_bytes(size, expected):
    assert format_bytes(size) == expected


@pytest.mark.parametrize("value", ["1", "true", "TRUE", " yes ", "on"])
def test_to_bool_truthy(value):
    assert to_bool(value) is True


@pytest.mark.parametrize("value", ["0", "false", "", "off", "nope"])
def test_to_bool_falsy(value):
    assert to_bool(value) is False


def test_env_reads_default_and_environment(monkeypatch):
    @dataclasses.dataclass
    class Settings:
        size: int = env("TEST_ARCHIVER_SIZE:5", convert=int)

    assert Settings().size == 5
    monkeypatch.setenv("TEST_ARCHIVER_SIZE", "9")
    assert Settings().size == 9


def test_env_without_default_requires_variable(monkeypatch):
    monkeypatch.delenv("TEST_ARCHIVER_REQUIRED", raising=False)

    @dataclasses.dataclass
    class Settings:
        value: str = env("TEST_ARCHIVER_REQUIRED")

    with pytest.raises(KeyError):
        Settings()


@pytest.mark.asyncio
async def test_async_timing_context_logs_duration(caplog):
    caplog.set_level("INFO", logger="s3_archiver.utils.timing")

    async with async_timing_context("complete_session", extra={"parts": 3}) as ctx:
        pass

    assert ctx["duration_ms"] >= 0
    assert ctx["parts"] == 3
    assert "TIMING complete_session duration_ms=" in caplog.text
    assert "parts=3" in caplog.text


@pytest.mark.asyncio
async def test_async_timing_context_respects_threshold(caplog):
    caplog.set_level("INFO", logger="s3_archiver.utils.timing")

    async with async_timing_context("list_objects", log_threshold_ms=60_000):
        pass

    assert "TIMING" not in caplog.text
