from typing import Any

import boto3
from botocore.config import Config as BotoConfig

from s3_archiver.config import Config


def make_s3_client(config: Config, max_pool_connections: int | None = None) -> Any:
    """Build a boto3 S3 client from configuration.

    Credentials come from the default boto3 chain (env, profile, instance role).
    The connection pool is sized so every in-flight part upload plus the
    source reader gets its own connection.
    """
    pool = max_pool_connections or max(10, config.max_in_flight_parts + 2)
    boto_config = BotoConfig(
        connect_timeout=config.connect_timeout_seconds,
        read_timeout=config.read_timeout_seconds,
        retries={"max_attempts": config.botocore_max_attempts, "mode": "standard"},
        max_pool_connections=pool,
        s3={"addressing_style": "auto"},
    )
    return boto3.client(
        "s3",
        endpoint_url=config.endpoint_url,
        region_name=config.region_name,
        config=boto_config,
    )
