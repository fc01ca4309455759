"""
Access log sources.

Each supported log producer is described by a LogSource value: its raw key
pattern, notification filter, table schema and column transformation
rules. Sources are registered by name when this package is imported.

Usage:
    from access_logs_pipeline.sources import get_log_source

    source = get_log_source('cloudfront', cookie_whitelist=['session_id'])
    partition = source.match_key('unprocessed/E24DN41CDZRLM8.2022-07-20-13.d94543d0.gz')
"""

from .base import (
    ColumnTransformationRules,
    LogSource,
    UnprocessedObjectsFilter,
    anonymize_ip_expression,
    build_log_source,
    build_transform_event,
)
from .cloudfront import (
    CLOUDFRONT_RAW_KEY_PATTERN,
    cloudfront_log_source,
    cookie_whitelist_expression,
)
from .registry import LogSourceRegistry, get_log_source, list_log_sources
from .s3_server import S3_SERVER_RAW_KEY_PATTERN, s3_server_log_source

__all__ = [
    # Base types
    "ColumnTransformationRules",
    "LogSource",
    "UnprocessedObjectsFilter",
    "anonymize_ip_expression",
    "build_log_source",
    "build_transform_event",
    # Registry
    "LogSourceRegistry",
    "get_log_source",
    "list_log_sources",
    # CloudFront
    "CLOUDFRONT_RAW_KEY_PATTERN",
    "cloudfront_log_source",
    "cookie_whitelist_expression",
    # S3 server access logs
    "S3_SERVER_RAW_KEY_PATTERN",
    "s3_server_log_source",
]
