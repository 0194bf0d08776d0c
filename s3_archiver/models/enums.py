from enum import Enum


class SessionState(str, Enum):
    """Lifecycle of one multipart upload session."""

    CREATED = "created"
    UPLOADING = "uploading"
    COMPLETING = "completing"
    COMPLETED = "completed"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.COMPLETED, SessionState.ABORTED)


class ErrorType(str, Enum):
    """Classification of a failed upload attempt."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class ZipCompression(str, Enum):
    STORED = "stored"
    DEFLATED = "deflated"
