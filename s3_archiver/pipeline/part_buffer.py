import logging
from typing import Optional

from s3_archiver.models import Part


logger = logging.getLogger(__name__)


class PartBuffer:
    """Accumulates producer output and cuts it into fixed-size, numbered parts.

    Every part except the last is exactly ``part_size`` bytes. Part numbers
    start at 1 and increase by one per emitted part, so the order of numbers
    is the order in which the bytes were produced.
    """

    def __init__(self, part_size: int):
        if part_size <= 0:
            raise ValueError(f"part_size must be positive, got {part_size}")
        self.part_size = part_size
        self._buffer = bytearray()
        self._next_part_number = 1
        self._flushed = False
        self.bytes_appended = 0

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    @property
    def parts_emitted(self) -> int:
        return self._next_part_number - 1

    def append(self, data: bytes) -> None:
        if self._flushed:
            raise RuntimeError("append() after flush_remainder()")
        if data:
            self._buffer.extend(data)
            self.bytes_appended += len(data)

    def drain_full_parts(self) -> list[Part]:
        parts: list[Part] = []
        while len(self._buffer) >= self.part_size:
            payload = bytes(self._buffer[: self.part_size])
            del self._buffer[: self.part_size]
            parts.append(self._emit(payload))
        return parts

    def flush_remainder(self) -> Optional[Part]:
        """Emit whatever is left as the final part. Called once, after end-of-stream."""
        if self._flushed:
            raise RuntimeError("flush_remainder() called twice")
        self._flushed = True

        # Callers drain before flushing; a full part here would exceed the final-part bound
        if len(self._buffer) >= self.part_size:
            raise RuntimeError("flush_remainder() with undrained full parts")
        if not self._buffer:
            return None

        payload = bytes(self._buffer)
        self._buffer.clear()
        return self._emit(payload)

    def _emit(self, payload: bytes) -> Part:
        part = Part(part_number=self._next_part_number, payload=payload)
        self._next_part_number += 1
        return part
