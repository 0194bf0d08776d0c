"""Command-line entry point: zip every object under an S3 prefix into one object in the same bucket."""

import argparse
import asyncio
from typing import Any
from typing import Optional
from typing import Sequence

from s3_archiver.archive_job import archive_prefix
from s3_archiver.config import ZIP_COMPRESSIONS
from s3_archiver.config import Config
from s3_archiver.config import get_config
from s3_archiver.errors import ArchiverError
from s3_archiver.logging_config import setup_loki_logging
from s3_archiver.monitoring import initialize_metrics_collector
from s3_archiver.services.run_id_service import generate_run_id
from s3_archiver.services.run_id_service import run_id_context
from s3_archiver.utils import MIB
from s3_archiver.utils import format_bytes


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="s3-archiver",
        description="Zip all objects under an S3 prefix and upload the archive to <directory><zipFileName>",
    )
    ap.add_argument("bucket", help="Source and destination bucket")
    ap.add_argument("directory", help="Key prefix to archive (include the trailing slash)")
    ap.add_argument("zip_file_name", metavar="zipFileName", help="Archive name, appended to directory")
    ap.add_argument("--part-size-mb", type=int, help="Minimum multipart part size in MiB (S3 floor is 5)")
    ap.add_argument("--max-in-flight", type=int, help="Maximum concurrent part uploads")
    ap.add_argument("--max-attempts", type=int, help="Upload attempts per part before giving up")
    ap.add_argument("--timeout", type=float, help="Overall deadline in seconds (0 disables)")
    ap.add_argument("--endpoint-url", help="S3-compatible endpoint (e.g. MinIO)")
    ap.add_argument("--compression", choices=ZIP_COMPRESSIONS, help="ZIP entry compression method")
    ap.add_argument("--skip-empty", action="store_true", help="Do not create an archive when the prefix is empty")
    ap.add_argument("--log-level", help="Override LOG_LEVEL")
    return ap


def _config_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.part_size_mb is not None:
        overrides["min_part_size_bytes"] = args.part_size_mb * MIB
    if args.max_in_flight is not None:
        overrides["max_in_flight_parts"] = args.max_in_flight
    if args.max_attempts is not None:
        overrides["part_max_attempts"] = args.max_attempts
    if args.timeout is not None:
        overrides["pipeline_timeout_seconds"] = args.timeout
    if args.endpoint_url:
        overrides["endpoint_url"] = args.endpoint_url
    if args.compression:
        overrides["zip_compression"] = args.compression
    if args.log_level:
        overrides["log_level"] = args.log_level
    return overrides


async def main_async(args: argparse.Namespace, config: Config, s3_client: Any = None) -> int:
    log = setup_loki_logging(config, "s3-archiver")
    run_id_context.set(generate_run_id())
    initialize_metrics_collector()

    try:
        ref = await archive_prefix(
            args.bucket,
            args.directory,
            args.zip_file_name,
            config=config,
            s3_client=s3_client,
            skip_empty=args.skip_empty,
        )
    except ArchiverError as e:
        log.error(f"Archive of s3://{args.bucket}/{args.directory} failed: {e}")
        return 1
    except Exception:
        log.exception(f"Unexpected error archiving s3://{args.bucket}/{args.directory}")
        return 1

    if ref is None:
        log.info("Nothing to archive")
        return 0
    log.info(f"Created s3://{ref.bucket}/{ref.key} ({ref.parts} parts, {format_bytes(ref.size_bytes)})")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    ap = build_parser()
    args = ap.parse_args(argv)
    try:
        config = get_config(**_config_overrides(args))
    except ValueError as e:
        ap.error(str(e))

    rc = asyncio.run(main_async(args, config))
    raise SystemExit(rc)


if __name__ == "__main__":
    main()
