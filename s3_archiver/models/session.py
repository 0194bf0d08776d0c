from typing import Optional

from pydantic import BaseModel
from pydantic import Field

from s3_archiver.models.enums import SessionState


class Destination(BaseModel):
    bucket: str
    key: str
    content_type: str = "application/zip"


class UploadSession(BaseModel):
    """One multipart upload transaction against one destination key.

    ``upload_id`` is opaque and is passed unchanged to every part upload.
    """

    destination: Destination
    upload_id: str
    min_part_size: int = Field(gt=0)
    state: SessionState = SessionState.CREATED

    @property
    def label(self) -> str:
        return f"s3://{self.destination.bucket}/{self.destination.key} upload_id={self.upload_id}"


class ObjectRef(BaseModel):
    """The finalized destination object."""

    bucket: str
    key: str
    etag: Optional[str] = None
    location: Optional[str] = None
    version_id: Optional[str] = None
    parts: int = 0
    size_bytes: int = 0


class ListingPage(BaseModel):
    keys: list[str]
    next_token: Optional[str] = None
