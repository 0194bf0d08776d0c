from s3_archiver.pipeline.assembler import CompletionAssembler
from s3_archiver.pipeline.coordinator import UploadCoordinator
from s3_archiver.pipeline.ledger import OutcomeLedger
from s3_archiver.pipeline.part_buffer import PartBuffer
from s3_archiver.pipeline.retry import RetryEngine
from s3_archiver.pipeline.retry import classify_error
from s3_archiver.pipeline.retry import compute_backoff_ms
from s3_archiver.pipeline.session_manager import SessionManager
from s3_archiver.pipeline.streaming_pipeline import StreamingUploadPipeline


__all__ = [
    "CompletionAssembler",
    "OutcomeLedger",
    "PartBuffer",
    "RetryEngine",
    "SessionManager",
    "StreamingUploadPipeline",
    "UploadCoordinator",
    "classify_error",
    "compute_backoff_ms",
]
