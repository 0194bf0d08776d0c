"""Utility modules and functions for s3_archiver.

This package combines utility functions from utils_core.py with the timing utilities.
"""

# Explicit imports only - no star imports to avoid namespace pollution
from s3_archiver.utils.timing import async_timing_context  # noqa: F401
from s3_archiver.utils_core import MIB  # noqa: F401
from s3_archiver.utils_core import env  # noqa: F401
from s3_archiver.utils_core import format_bytes  # noqa: F401
from s3_archiver.utils_core import to_bool  # noqa: F401


__all__ = [
    # From utils_core.py
    "MIB",
    "env",
    "format_bytes",
    "to_bool",
    # From timing.py
    "async_timing_context",
]
