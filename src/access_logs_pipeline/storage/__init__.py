"""
Object storage access for the access log pipeline.

Usage:
    from access_logs_pipeline.storage import ObjectStore, S3Location

    store = ObjectStore()
    store.copy("logs-bucket", "unprocessed/a.gz", "by-date/year=2022/.../a.gz")
"""

from .s3 import DELETE_BATCH_SIZE, ObjectStore, S3Location

__all__ = [
    "ObjectStore",
    "S3Location",
    "DELETE_BATCH_SIZE",
]
