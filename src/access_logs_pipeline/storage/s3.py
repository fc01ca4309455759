"""
S3 object operations used by the pipeline.

Wraps the few calls the jobs need (copy, delete, delete by prefix) around
a boto3 S3 client, which can be injected for testing.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

# DeleteObjects accepts at most 1000 keys per request
DELETE_BATCH_SIZE = 1000


@dataclass(frozen=True)
class S3Location:
    """A bucket and key prefix, parsed from an `s3://bucket/prefix` URI."""

    bucket: str
    prefix: str = ""

    @classmethod
    def from_uri(cls, uri: str) -> "S3Location":
        """
        Parse an s3:// URI.

        Raises:
            ValueError: If the URI is not an s3:// URI with a bucket
        """
        parsed = urlparse(uri)
        if parsed.scheme != "s3" or not parsed.netloc:
            raise ValueError(f"Not an s3:// URI: {uri!r}")
        return cls(bucket=parsed.netloc, prefix=parsed.path.strip("/"))

    def join(self, *parts: str) -> str:
        """Join key parts below this location's prefix."""
        segments = [self.prefix] + [part.strip("/") for part in parts]
        return "/".join(segment for segment in segments if segment)

    def __str__(self) -> str:
        return f"s3://{self.bucket}/{self.prefix}" if self.prefix else f"s3://{self.bucket}"


class ObjectStore:
    """S3 operations for relocating and purging access log objects."""

    def __init__(self, client: Optional[Any] = None):
        """
        Args:
            client: boto3 S3 client (shared default client if None)
        """
        if client is None:
            from ..utils.aws_clients import get_s3_client

            client = get_s3_client()
        self._client = client

    def copy(self, bucket: str, source_key: str, target_key: str) -> None:
        """Copy an object within a bucket."""
        self._client.copy_object(
            Bucket=bucket,
            Key=target_key,
            CopySource={"Bucket": bucket, "Key": source_key},
        )

    def delete(self, bucket: str, key: str) -> None:
        """Delete an object (deleting a missing key is not an error)."""
        self._client.delete_object(Bucket=bucket, Key=key)

    def delete_prefix(self, bucket: str, prefix: str) -> int:
        """
        Delete every object below a prefix.

        Args:
            bucket: Bucket name
            prefix: Key prefix; a trailing slash is added so sibling
                prefixes (hour=1 vs hour=10) are never matched

        Returns:
            Number of deleted objects

        Raises:
            RuntimeError: If S3 reports keys it could not delete
        """
        if not prefix.strip("/"):
            raise ValueError("Refusing to delete with an empty prefix")
        prefix = prefix.rstrip("/") + "/"

        keys = []
        paginator = self._client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
            keys.extend(item["Key"] for item in page.get("Contents", []))

        deleted = 0
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start : start + DELETE_BATCH_SIZE]
            response = self._client.delete_objects(
                Bucket=bucket,
                Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
            )
            errors = response.get("Errors", [])
            if errors:
                failed = ", ".join(error.get("Key", "?") for error in errors)
                raise RuntimeError(
                    f"Failed to delete {len(errors)} object(s) below "
                    f"s3://{bucket}/{prefix}: {failed}"
                )
            deleted += len(batch)

        logger.debug(f"Deleted {deleted} object(s) below s3://{bucket}/{prefix}")
        return deleted
