"""Grouping of raw access log objects by date."""

from .group_by_date import (
    GroupingResult,
    LogGrouper,
    S3ObjectRef,
    build_target_key,
    parse_s3_event,
)

__all__ = [
    "GroupingResult",
    "LogGrouper",
    "S3ObjectRef",
    "build_target_key",
    "parse_s3_event",
]
