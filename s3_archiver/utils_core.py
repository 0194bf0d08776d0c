"""Utility functions for the s3-archiver service."""

import dataclasses
import logging
import os
import typing
from typing import Any
from typing import Callable
from typing import TypeVar


T = TypeVar("T")

logger = logging.getLogger(__name__)

MIB = 1024 * 1024


def env(key: str, convert: Callable[[str], T] = typing.cast(Callable[[str], T], str), **kwargs: Any) -> T:
    """Load a value from environment variables with optional default and type conversion."""
    key, partition, default = key.partition(":")

    def default_factory(
        key_val: str = key, default_val: str = default, convert_func: Callable[[str], T] = convert
    ) -> T:
        if key_val in os.environ:
            return convert_func(os.environ[key_val])

        if partition == ":":
            return convert_func(default_val)

        raise KeyError(key_val)

    return typing.cast(T, dataclasses.field(default_factory=default_factory, **kwargs))


def to_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def format_bytes(size: int) -> str:
    """Human readable byte count, e.g. 10485760 -> '10.0 MiB'."""
    value = float(size)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if value < 1024 or unit == "GiB":
            return f"{int(value)} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} GiB"
