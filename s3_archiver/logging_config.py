import logging
import os
import sys
from typing import Protocol

from loki_logger_handler.loki_logger_handler import LokiLoggerHandler

from s3_archiver.services.run_id_service import run_id_context


LOG_FORMAT = "%(asctime)s - [%(run_id)s] - %(name)s - %(levelname)s - %(message)s"

# AWS SDK loggers are chatty at INFO (credential lookups, endpoint resolution)
QUIET_LOGGERS = ("botocore", "boto3", "urllib3")


class LoggingConfig(Protocol):
    log_level: str
    loki_enabled: bool
    loki_url: str
    environment: str


class RunIDFilter(logging.Filter):
    """Fills ``record.run_id`` from the current run when the record has none."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "run_id"):
            record.run_id = run_id_context.get()
        return True


def _loki_handler(config: LoggingConfig, service_name: str) -> logging.Handler:
    return LokiLoggerHandler(
        url=config.loki_url,
        labels={
            "service": service_name,
            "environment": config.environment,
            "host": os.getenv("HOSTNAME", "unknown"),
        },
        timeout=10,
        compressed=True,
    )


def setup_loki_logging(config: LoggingConfig, service_name: str) -> logging.Logger:
    """Log to stdout, and to Loki when enabled. Every line carries the archive run ID."""
    log_level = getattr(logging, config.log_level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.loki_enabled and config.loki_url:
        handlers.append(_loki_handler(config, service_name))

    run_id_filter = RunIDFilter()
    for handler in handlers:
        handler.addFilter(run_id_filter)

    logging.basicConfig(level=log_level, format=LOG_FORMAT, handlers=handlers, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    return logging.getLogger(service_name)
