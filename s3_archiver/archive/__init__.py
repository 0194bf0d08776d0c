from s3_archiver.archive.zip_producer import ZipStreamProducer


__all__ = ["ZipStreamProducer"]
