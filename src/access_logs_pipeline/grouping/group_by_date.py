"""
Grouping of raw access logs by date.

Moves raw access log objects into a folder hierarchy by year, month, day
and hour (UTC) so they can be queried per partition:

    unprocessed/E24DN41CDZRLM8.2022-07-20-13.d94543d0.gz
    -> by-date/year=2022/month=07/day=20/hour=13/E24DN41CDZRLM8.2022-07-20-13.d94543d0.gz

The date is taken from the object key, never from the processing time, so
late or repeated deliveries land in the right partition. Objects are copied
first and the source is only deleted once the copy succeeded.
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional
from urllib.parse import unquote_plus

from botocore.exceptions import ClientError

from ..config.constants import DEFAULT_GROUPING_MAX_WORKERS
from ..exceptions import InvalidEventError, ObjectRelocationError
from ..partitioning.partition import Partition
from ..storage.s3 import ObjectStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class S3ObjectRef:
    """An object named in an object-created notification."""

    bucket: str
    key: str

    @property
    def basename(self) -> str:
        """Everything after the last slash."""
        return self.key.rsplit("/", 1)[-1]


def parse_s3_event(event: Mapping[str, Any]) -> list[S3ObjectRef]:
    """
    Extract the objects of an S3 notification event.

    Keys arrive URL-encoded (spaces as '+') and are decoded here.

    Raises:
        InvalidEventError: If a record lacks the bucket name or object key
    """
    objects = []
    for index, record in enumerate(event.get("Records") or []):
        try:
            bucket = record["s3"]["bucket"]["name"]
            key = record["s3"]["object"]["key"]
        except (KeyError, TypeError) as e:
            raise InvalidEventError(
                f"Record {index} is not an S3 notification: missing {e}",
                field="Records",
            ) from e
        objects.append(S3ObjectRef(bucket=bucket, key=unquote_plus(key)))
    return objects


def build_target_key(target_folder: str, partition: Partition, basename: str) -> str:
    """Get `{target}/year=YYYY/month=MM/day=DD/hour=HH/{basename}`."""
    return f"{partition.to_prefix(target_folder)}/{basename}"


@dataclass
class GroupingResult:
    """Outcome of grouping one batch of raw log objects."""

    moved: list[tuple[str, str]] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[tuple[str, BaseException]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed

    def raise_for_failures(self) -> None:
        """
        Raises:
            ObjectRelocationError: Listing every object that failed
        """
        if self.failed:
            raise ObjectRelocationError(self.failed)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/serialization."""
        return {
            "success": self.success,
            "moved_count": len(self.moved),
            "skipped_count": len(self.skipped),
            "failed_count": len(self.failed),
            "failed_keys": [key for key, _ in self.failed],
        }


class LogGrouper:
    """
    Relocates raw access log objects into the by-date folder hierarchy.

    Objects whose key doesn't match the pattern belong to other producers
    sharing the bucket and are skipped without error.

    Example:
        grouper = LogGrouper("by-date", compile_key_pattern(CLOUDFRONT_RAW_KEY_PATTERN))
        result = grouper.group(parse_s3_event(event))
        result.raise_for_failures()
    """

    def __init__(
        self,
        target_folder: str,
        key_pattern: re.Pattern,
        object_store: Optional[ObjectStore] = None,
        max_workers: int = DEFAULT_GROUPING_MAX_WORKERS,
    ):
        """
        Args:
            target_folder: Folder of the grouped logs (slashes are stripped)
            key_pattern: Pattern with named groups year, month, day and hour
            object_store: Object store used to copy and delete
            max_workers: Maximum number of objects relocated concurrently
        """
        self.target_folder = target_folder.strip("/")
        self.key_pattern = key_pattern
        self.max_workers = max_workers
        self._object_store = object_store or ObjectStore()

    def target_key_for(self, key: str) -> Optional[str]:
        """Get the grouped key of a raw key, or None if the key doesn't match."""
        match = self.key_pattern.search(key)
        if match is None:
            return None
        basename = key.rsplit("/", 1)[-1]
        return build_target_key(self.target_folder, Partition.from_match(match), basename)

    def group(self, objects: Iterable[S3ObjectRef]) -> GroupingResult:
        """
        Relocate a batch of objects concurrently.

        Waits until every relocation has settled. Failures are collected
        per object rather than raised, so one bad object never hides the
        outcome of the others.
        """
        result = GroupingResult()
        pending = []
        for obj in objects:
            target_key = self.target_key_for(obj.key)
            if target_key is None:
                logger.debug(f"Skipping object not matching the key pattern: {obj.key}")
                result.skipped.append(obj.key)
            else:
                pending.append((obj, target_key))

        if not pending:
            return result

        workers = min(self.max_workers, len(pending))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self._relocate, obj, target_key): (obj, target_key)
                for obj, target_key in pending
            }
            for future in as_completed(futures):
                obj, target_key = futures[future]
                try:
                    relocated = future.result()
                except Exception as e:
                    logger.error(f"Failed to move s3://{obj.bucket}/{obj.key}: {e}")
                    result.failed.append((obj.key, e))
                    continue
                if relocated:
                    result.moved.append((obj.key, target_key))
                else:
                    result.skipped.append(obj.key)

        return result

    def _relocate(self, obj: S3ObjectRef, target_key: str) -> bool:
        """Copy then delete an object. Returns False if the source is already gone."""
        try:
            self._object_store.copy(obj.bucket, obj.key, target_key)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") not in ("NoSuchKey", "404"):
                raise
            # redelivered notification of an object moved by an earlier run
            logger.warning(f"Source object no longer exists: s3://{obj.bucket}/{obj.key}")
            return False
        # only remove the source once the copy exists
        self._object_store.delete(obj.bucket, obj.key)
        logger.debug(f"Moved s3://{obj.bucket}/{obj.key} to {target_key}")
        return True
