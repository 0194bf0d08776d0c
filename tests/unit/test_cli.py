import importlib
import logging
from unittest.mock import AsyncMock
from unittest.mock import patch

import pytest

from s3_archiver.cli import build_parser
from s3_archiver.cli import main
from s3_archiver.errors import PartExhaustedError
from s3_archiver.models import ObjectRef


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("s3_archiver.cli.setup_loki_logging", return_value=logging.getLogger("s3-archiver")) as setup:
        yield setup


def test_console_script_target_imports():
    module = importlib.import_module("s3_archiver.cli")

    assert module.main is main
    assert callable(importlib.import_module("s3_archiver.storage.s3_lister").S3ObjectLister.list_all)


def _ref() -> ObjectRef:
    return ObjectRef(bucket="bucket", key="exports/exports.zip", etag='"e-3"', parts=3, size_bytes=1234)


def test_success_exits_zero():
    archive = AsyncMock(return_value=_ref())
    with patch("s3_archiver.cli.archive_prefix", archive):
        with pytest.raises(SystemExit) as exc_info:
            main(["bucket", "exports/", "exports.zip", "--part-size-mb", "8", "--max-in-flight", "6"])

    assert exc_info.value.code == 0
    args = archive.await_args
    assert args.args == ("bucket", "exports/", "exports.zip")
    assert args.kwargs["config"].min_part_size_bytes == 8 * 1024 * 1024
    assert args.kwargs["config"].max_in_flight_parts == 6
    assert args.kwargs["skip_empty"] is False


def test_skip_empty_with_nothing_to_do_exits_zero():
    archive = AsyncMock(return_value=None)
    with patch("s3_archiver.cli.archive_prefix", archive):
        with pytest.raises(SystemExit) as exc_info:
            main(["bucket", "empty/", "empty.zip", "--skip-empty"])

    assert exc_info.value.code == 0
    assert archive.await_args.kwargs["skip_empty"] is True


def test_archiver_error_exits_one(caplog):
    archive = AsyncMock(side_effect=PartExhaustedError(2, 5, "SlowDown"))
    with patch("s3_archiver.cli.archive_prefix", archive):
        with pytest.raises(SystemExit) as exc_info:
            main(["bucket", "exports/", "exports.zip"])

    assert exc_info.value.code == 1
    assert "Part 2 failed after 5 attempts" in caplog.text


def test_unexpected_error_exits_one(caplog):
    archive = AsyncMock(side_effect=RuntimeError("kaboom"))
    with patch("s3_archiver.cli.archive_prefix", archive):
        with pytest.raises(SystemExit) as exc_info:
            main(["bucket", "exports/", "exports.zip"])

    assert exc_info.value.code == 1
    assert "kaboom" in caplog.text


def test_invalid_option_value_is_a_usage_error():
    with pytest.raises(SystemExit) as exc_info:
        main(["bucket", "exports/", "exports.zip", "--max-in-flight", "0"])

    assert exc_info.value.code == 2


def test_missing_positional_is_a_usage_error():
    with pytest.raises(SystemExit) as exc_info:
        main(["bucket"])

    assert exc_info.value.code == 2


def test_parser_accepts_all_options():
    args = build_parser().parse_args(
        [
            "bucket",
            "dir/",
            "out.zip",
            "--timeout",
            "30",
            "--max-attempts",
            "4",
            "--endpoint-url",
            "http://minio:9000",
            "--compression",
            "stored",
        ]
    )

    assert args.zip_file_name == "out.zip"
    assert args.timeout == 30.0
    assert args.max_attempts == 4
    assert args.endpoint_url == "http://minio:9000"
    assert args.compression == "stored"
