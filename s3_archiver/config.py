import dataclasses
import logging
from typing import Any
from typing import Optional

import dotenv

from s3_archiver.models.enums import ZipCompression
from s3_archiver.utils import MIB
from s3_archiver.utils import env
from s3_archiver.utils import to_bool


dotenv.load_dotenv()

logger = logging.getLogger(__name__)

# S3 rejects non-final parts below this size with EntityTooSmall
S3_MIN_PART_SIZE_BYTES = 5 * MIB
S3_MAX_PART_NUMBER = 10000

ZIP_COMPRESSIONS = tuple(c.value for c in ZipCompression)


def _optional_str(value: str) -> Optional[str]:
    value = value.strip()
    return value or None


@dataclasses.dataclass
class Config:
    """Application configuration settings."""

    # Multipart pipeline
    min_part_size_bytes: int = env("S3_ARCHIVER_MIN_PART_SIZE_BYTES:10485760", convert=int)  # 10 MiB
    max_in_flight_parts: int = env("S3_ARCHIVER_MAX_IN_FLIGHT_PARTS:4", convert=int)
    part_max_attempts: int = env("S3_ARCHIVER_PART_MAX_ATTEMPTS:5", convert=int)
    backoff_base_ms: int = env("S3_ARCHIVER_BACKOFF_BASE_MS:500", convert=int)
    backoff_max_ms: int = env("S3_ARCHIVER_BACKOFF_MAX_MS:60000", convert=int)
    # 0 disables the overall deadline
    pipeline_timeout_seconds: float = env("S3_ARCHIVER_PIPELINE_TIMEOUT_SECONDS:0", convert=float)

    # Source enumeration / reads
    list_page_size: int = env("S3_ARCHIVER_LIST_PAGE_SIZE:1000", convert=int)
    read_chunk_size_bytes: int = env("S3_ARCHIVER_READ_CHUNK_SIZE_BYTES:1048576", convert=int)  # 1 MiB

    # Archive
    zip_compression: str = env("S3_ARCHIVER_ZIP_COMPRESSION:deflated", convert=lambda x: x.strip().lower())
    content_type: str = env("S3_ARCHIVER_CONTENT_TYPE:application/zip")

    # S3 client
    endpoint_url: Optional[str] = env("S3_ARCHIVER_ENDPOINT_URL:", convert=_optional_str)
    region_name: Optional[str] = env("AWS_REGION:", convert=_optional_str)
    connect_timeout_seconds: float = env("S3_ARCHIVER_CONNECT_TIMEOUT_SECONDS:10", convert=float)
    read_timeout_seconds: float = env("S3_ARCHIVER_READ_TIMEOUT_SECONDS:120", convert=float)
    # Retries are owned by the pipeline's retry engine; botocore only gets a single attempt by default
    botocore_max_attempts: int = env("S3_ARCHIVER_BOTOCORE_MAX_ATTEMPTS:1", convert=int)

    # Logging
    log_level: str = env("LOG_LEVEL:INFO")
    loki_url: str = env("LOKI_URL:", convert=str)
    loki_enabled: bool = env("LOKI_ENABLED:false", convert=to_bool)
    environment: str = env("ENVIRONMENT:production")


def get_config(**overrides: Any) -> Config:
    """Get application configuration.

    Keyword overrides (e.g. from command-line flags) replace the environment
    values before validation.
    """
    cfg = Config(**overrides)

    for name in (
        "min_part_size_bytes",
        "max_in_flight_parts",
        "part_max_attempts",
        "list_page_size",
        "read_chunk_size_bytes",
        "botocore_max_attempts",
    ):
        if int(getattr(cfg, name)) <= 0:
            raise ValueError(f"{name} must be positive, got {getattr(cfg, name)}")

    if cfg.backoff_base_ms < 0 or cfg.backoff_max_ms < cfg.backoff_base_ms:
        raise ValueError(f"invalid backoff window base={cfg.backoff_base_ms} max={cfg.backoff_max_ms}")

    if cfg.pipeline_timeout_seconds < 0:
        raise ValueError("pipeline_timeout_seconds must be >= 0")

    if cfg.zip_compression not in ZIP_COMPRESSIONS:
        raise ValueError(f"zip_compression must be one of {ZIP_COMPRESSIONS}, got {cfg.zip_compression!r}")

    # S3 caps list_objects_v2 pages at 1000
    object.__setattr__(cfg, "list_page_size", min(cfg.list_page_size, 1000))

    if cfg.min_part_size_bytes < S3_MIN_PART_SIZE_BYTES:
        logger.warning(
            f"min_part_size_bytes={cfg.min_part_size_bytes} is below the S3 floor of {S3_MIN_PART_SIZE_BYTES}; "
            "AWS will reject non-final parts with EntityTooSmall"
        )

    return cfg
