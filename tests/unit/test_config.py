import pytest

from s3_archiver.config import S3_MIN_PART_SIZE_BYTES
from s3_archiver.config import get_config


def test_defaults():
    config = get_config()

    assert config.min_part_size_bytes == 10 * 1024 * 1024
    assert config.max_in_flight_parts == 4
    assert config.part_max_attempts == 5
    assert config.pipeline_timeout_seconds == 0
    assert config.zip_compression == "deflated"
    assert config.endpoint_url is None
    assert config.botocore_max_attempts == 1


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("S3_ARCHIVER_MAX_IN_FLIGHT_PARTS", "8")
    monkeypatch.setenv("S3_ARCHIVER_ZIP_COMPRESSION", " STORED ")
    monkeypatch.setenv("S3_ARCHIVER_ENDPOINT_URL", "http://minio:9000")
    monkeypatch.setenv("LOKI_ENABLED", "true")

    config = get_config()

    assert config.max_in_flight_parts == 8
    assert config.zip_compression == "stored"
    assert config.endpoint_url == "http://minio:9000"
    assert config.loki_enabled is True


def test_keyword_overrides_win_over_environment(monkeypatch):
    monkeypatch.setenv("S3_ARCHIVER_PART_MAX_ATTEMPTS", "2")

    config = get_config(part_max_attempts=7)

    assert config.part_max_attempts == 7


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_in_flight_parts": 0},
        {"min_part_size_bytes": -1},
        {"part_max_attempts": 0},
        {"backoff_base_ms": 1000, "backoff_max_ms": 10},
        {"pipeline_timeout_seconds": -5},
        {"zip_compression": "bzip2"},
    ],
)
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(ValueError):
        get_config(**overrides)


def test_list_page_size_is_capped():
    assert get_config(list_page_size=5000).list_page_size == 1000


def test_small_part_size_warns(caplog):
    config = get_config(min_part_size_bytes=S3_MIN_PART_SIZE_BYTES - 1)

    assert config.min_part_size_bytes == S3_MIN_PART_SIZE_BYTES - 1
    assert "EntityTooSmall" in caplog.text
