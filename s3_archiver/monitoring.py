import logging
from typing import Optional

from opentelemetry import metrics


logger = logging.getLogger(__name__)


class MetricsCollector:
    def __init__(self) -> None:
        self.meter = metrics.get_meter(__name__)
        self._setup_metrics()

    def _setup_metrics(self) -> None:
        self.parts_uploaded_total = self.meter.create_counter(
            name="archiver_parts_uploaded_total", description="Parts acknowledged by the store", unit="1"
        )

        self.part_failures_total = self.meter.create_counter(
            name="archiver_part_failures_total", description="Failed part upload attempts by error type", unit="1"
        )

        self.part_retries_total = self.meter.create_counter(
            name="archiver_part_retries_total", description="Part uploads re-dispatched after a failure", unit="1"
        )

        self.bytes_uploaded_total = self.meter.create_counter(
            name="archiver_bytes_uploaded_total", description="Payload bytes acknowledged by the store", unit="bytes"
        )

        self.parts_in_flight = self.meter.create_up_down_counter(
            name="archiver_parts_in_flight", description="Part uploads currently in flight", unit="1"
        )

        self.sessions_total = self.meter.create_counter(
            name="archiver_sessions_total", description="Multipart sessions by terminal state", unit="1"
        )

        self.finalize_duration = self.meter.create_histogram(
            name="archiver_finalize_duration_seconds", description="Duration of the complete call", unit="s"
        )

    def record_part_started(self) -> None:
        self.parts_in_flight.add(1)

    def record_part_upload(
        self,
        success: bool,
        size_bytes: int = 0,
        attempt: int = 1,
        error_type: Optional[str] = None,
    ) -> None:
        self.parts_in_flight.add(-1)
        if success:
            self.parts_uploaded_total.add(1, {"first_attempt": attempt == 1})
            self.bytes_uploaded_total.add(size_bytes)
        else:
            self.part_failures_total.add(1, {"error_type": error_type or "unknown"})

    def record_part_retry(self, attempt: int) -> None:
        self.part_retries_total.add(1, {"attempt": attempt})

    def record_session(self, state: str) -> None:
        self.sessions_total.add(1, {"state": state})

    def record_finalize(self, duration_seconds: float, parts: int) -> None:
        self.finalize_duration.record(duration_seconds, {"parts_bucket": _parts_bucket(parts)})


def _parts_bucket(parts: int) -> str:
    if parts <= 1:
        return "1"
    if parts <= 10:
        return "2-10"
    if parts <= 100:
        return "11-100"
    return "100+"


_metrics_collector: Optional[MetricsCollector] = None


def initialize_metrics_collector() -> MetricsCollector:
    global _metrics_collector
    _metrics_collector = MetricsCollector()
    logger.debug("Metrics collector initialized")
    return _metrics_collector


def get_metrics_collector() -> MetricsCollector:
    """Return the process-wide collector, creating it on first use.

    Without an OpenTelemetry SDK configured the instruments are no-ops.
    """
    if _metrics_collector is None:
        return initialize_metrics_collector()
    return _metrics_collector
