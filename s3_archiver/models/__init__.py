from s3_archiver.models.enums import ErrorType
from s3_archiver.models.enums import SessionState
from s3_archiver.models.enums import ZipCompression
from s3_archiver.models.part import AcknowledgedPart
from s3_archiver.models.part import FailedPart
from s3_archiver.models.part import Part
from s3_archiver.models.part import PartOutcome
from s3_archiver.models.session import Destination
from s3_archiver.models.session import ListingPage
from s3_archiver.models.session import ObjectRef
from s3_archiver.models.session import UploadSession


__all__ = [
    "AcknowledgedPart",
    "Destination",
    "ErrorType",
    "FailedPart",
    "ListingPage",
    "ObjectRef",
    "Part",
    "PartOutcome",
    "SessionState",
    "UploadSession",
    "ZipCompression",
]
