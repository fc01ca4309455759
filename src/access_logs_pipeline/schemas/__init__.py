"""Schemas of the access log tables."""

from .access_logs import (
    ACCESS_LOG_PARTITION_KEYS,
    CLOUDFRONT_ACCESS_LOG_COLUMNS,
    CLOUDFRONT_ACCESS_LOG_SCHEMA,
    S3_SERVER_ACCESS_LOG_COLUMNS,
    S3_SERVER_ACCESS_LOG_SCHEMA,
    Column,
    TableSchema,
)

__all__ = [
    "Column",
    "TableSchema",
    "ACCESS_LOG_PARTITION_KEYS",
    # CloudFront
    "CLOUDFRONT_ACCESS_LOG_COLUMNS",
    "CLOUDFRONT_ACCESS_LOG_SCHEMA",
    # S3 server access logs
    "S3_SERVER_ACCESS_LOG_COLUMNS",
    "S3_SERVER_ACCESS_LOG_SCHEMA",
]
