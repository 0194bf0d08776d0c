from s3_archiver.storage.base import ObjectLister
from s3_archiver.storage.base import ObjectSource
from s3_archiver.storage.base import StorageEndpoint


__all__ = ["ObjectLister", "ObjectSource", "StorageEndpoint"]
