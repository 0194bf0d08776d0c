"""Stream an S3 prefix into a single ZIP object via multipart upload."""

__version__ = "0.3.0"
