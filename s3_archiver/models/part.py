from typing import Union

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from s3_archiver.models.enums import ErrorType


class Part(BaseModel):
    """A contiguous slice of the archive stream destined for one upload call."""

    model_config = ConfigDict(frozen=True)

    part_number: int = Field(ge=1)
    payload: bytes

    @property
    def size(self) -> int:
        return len(self.payload)


class AcknowledgedPart(BaseModel):
    part_number: int = Field(ge=1)
    etag: str
    size: int = 0
    attempts: int = 1

    def as_s3_part(self) -> dict:
        return {"PartNumber": self.part_number, "ETag": self.etag}


class FailedPart(BaseModel):
    """Outcome of a failed attempt. Keeps the payload so a retry re-sends identical bytes."""

    part_number: int = Field(ge=1)
    payload: bytes
    error: str
    error_type: ErrorType = ErrorType.UNKNOWN
    attempts: int = 1

    def to_part(self) -> Part:
        return Part(part_number=self.part_number, payload=self.payload)


PartOutcome = Union[AcknowledgedPart, FailedPart]
