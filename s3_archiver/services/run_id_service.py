import contextvars
import logging
import uuid
from typing import Any
from typing import MutableMapping
from typing import Optional


run_id_context: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default="no-run-id")


def generate_run_id() -> str:
    """Generate a 16-character hex run ID from UUID4.

    Returns:
        A 16-character lowercase hex string (first 64 bits of UUID4).
        Example: "a1b2c3d4e5f67890"
    """
    return uuid.uuid4().hex[:16]


class RunIDLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that stamps every record with a fixed run_id.

    Useful for upload tasks that outlive the context in which the run id was set.
    """

    def __init__(self, logger: logging.Logger, run_id: Optional[str] = None):
        super().__init__(logger, {"run_id": run_id or "no-run-id"})

    def process(self, msg: str, kwargs: MutableMapping[str, Any]) -> tuple[str, MutableMapping[str, Any]]:
        if "extra" not in kwargs:
            kwargs["extra"] = {}
        kwargs["extra"]["run_id"] = self.extra.get("run_id", "no-run-id") if self.extra else "no-run-id"
        return msg, kwargs


def get_logger_with_run_id(name: str, run_id: Optional[str] = None) -> RunIDLoggerAdapter:
    """Get a logger that includes run_id in all messages.

    Args:
        name: The name of the logger (typically __name__)
        run_id: The run ID to inject. Falls back to the current context value.
    """
    return RunIDLoggerAdapter(logging.getLogger(name), run_id or run_id_context.get())
