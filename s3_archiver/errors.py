"""Exception hierarchy for the archive upload pipeline."""

from typing import Optional


class ArchiverError(Exception):
    """Base class for every failure that ends a run."""


class EnumerationError(ArchiverError):
    """Listing the source prefix failed; no session was opened."""


class UploadError(ArchiverError):
    """A part upload failed."""

    def __init__(self, message: str, part_number: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.part_number = part_number
        self.code = code


class TransientUploadError(UploadError):
    """Throttling, timeouts, 5xx. Safe to retry with backoff."""


class PermanentUploadError(UploadError):
    """Invalid session, size policy violation, access denied. Never retried."""


class PartExhaustedError(ArchiverError):
    """A part failed on every attempt of its retry budget."""

    def __init__(self, part_number: int, attempts: int, last_error: str):
        super().__init__(f"Part {part_number} failed after {attempts} attempts: {last_error}")
        self.part_number = part_number
        self.attempts = attempts
        self.last_error = last_error


class FinalizeError(ArchiverError):
    """The complete call for the session failed."""


class EmptyStreamError(ArchiverError):
    """The producer emitted no bytes, so there is nothing to finalize."""


class PipelineTimeoutError(ArchiverError):
    """The run exceeded its overall deadline."""


class IncompleteUploadError(ArchiverError):
    """Acknowledged parts do not cover 1..N densely at finalize time."""


class InvalidSessionTransition(ArchiverError):
    """An upload session was moved along an edge its state machine does not allow."""

    def __init__(self, upload_id: str, current: str, target: str):
        super().__init__(f"Session {upload_id}: illegal transition {current} -> {target}")
        self.upload_id = upload_id
        self.current = current
        self.target = target


class SourceReadError(ArchiverError):
    """Reading a source object failed mid-archive."""
