import logging

from s3_archiver.models import AcknowledgedPart
from s3_archiver.models import FailedPart


logger = logging.getLogger(__name__)


class OutcomeLedger:
    """Per-run record of part outcomes, keyed by part number.

    Only coroutines running on the pipeline's event loop touch the ledger, so
    each method runs to completion without interleaving with another upload
    task. Upload worker threads never see it; they only return ETags.
    """

    def __init__(self) -> None:
        self.acknowledged: dict[int, AcknowledgedPart] = {}
        self.failed: dict[int, FailedPart] = {}
        self._retrying: set[int] = set()
        self._dispatched: set[int] = set()
        self.stream_complete = False

    @property
    def dispatched(self) -> int:
        return len(self._dispatched)

    def record_dispatched(self, part_number: int) -> None:
        self._dispatched.add(part_number)

    def record_success(self, part: AcknowledgedPart) -> None:
        if part.part_number in self.acknowledged:
            logger.warning(f"Part {part.part_number} acknowledged twice; keeping latest ETag")
        self.acknowledged[part.part_number] = part
        self.failed.pop(part.part_number, None)
        self._retrying.discard(part.part_number)

    def record_failure(self, part: FailedPart) -> None:
        """Replace any earlier failure for the same part number."""
        if part.part_number in self.acknowledged:
            # A late failure for a part that already succeeded is ignored
            return
        self.failed[part.part_number] = part
        self._retrying.discard(part.part_number)

    def mark_retrying(self, part_number: int) -> None:
        self._retrying.add(part_number)

    def mark_stream_complete(self) -> None:
        self.stream_complete = True

    def missing(self) -> list[int]:
        """Dispatched part numbers without an acknowledgement."""
        return sorted(self._dispatched - set(self.acknowledged))

    @property
    def ready_to_complete(self) -> bool:
        return (
            self.stream_complete
            and not self.failed
            and not self._retrying
            and len(self.acknowledged) == self.dispatched
        )
