"""Timing instrumentation for pipeline stages (listing, finalize)."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any
from typing import AsyncGenerator


logger = logging.getLogger(__name__)


@asynccontextmanager
async def async_timing_context(
    operation: str, *, log_threshold_ms: float = 0.0, extra: dict[str, Any] | None = None
) -> AsyncGenerator[dict[str, Any], None]:
    """Time an async block and log the duration.

    Args:
        operation: Name of the operation being timed
        log_threshold_ms: Only log if duration exceeds this threshold (ms). 0 = always log.
        extra: Additional context to include in log

    Yields:
        Timing dict with 'start' field, will have 'duration_ms' on exit

    Example:
        async with async_timing_context("complete_session", extra={"parts": 3}):
            ref = await endpoint.complete_session(session, parts)
        # Logs: "TIMING complete_session duration_ms=42.3 parts=3"
    """
    ctx: dict[str, Any] = {"start": time.perf_counter()}
    if extra:
        ctx.update(extra)

    try:
        yield ctx
    finally:
        ctx["duration_ms"] = (time.perf_counter() - ctx["start"]) * 1000.0
        if ctx["duration_ms"] >= log_threshold_ms:
            extra_str = " ".join(f"{k}={v}" for k, v in (extra or {}).items())
            logger.info(f"TIMING {operation} duration_ms={ctx['duration_ms']:.2f} {extra_str}".strip())
