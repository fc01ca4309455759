"""
S3 server access logs.

S3 delivers uncompressed, space separated log objects named
`{prefix}{year}-{month}-{day}-{hour}-{minute}-{second}-{unique_id}`,
e.g. `unprocessed/2022-07-20-13-45-12-8A2F4B6C1D3E5F70`.
"""

from ..config.constants import FOLDER_UNPROCESSED
from ..schemas.access_logs import S3_SERVER_ACCESS_LOG_SCHEMA
from .base import (
    LogSource,
    UnprocessedObjectsFilter,
    anonymize_ip_expression,
    build_log_source,
)
from .registry import LogSourceRegistry

S3_SERVER_RAW_KEY_PATTERN = (
    r"(?:^|/)(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})-(?P<hour>\d{2})"
    r"-\d{2}-\d{2}-[0-9A-Z]{16}$"
)


@LogSourceRegistry.register("s3")
def s3_server_log_source(anonymize_client_ip: bool = True) -> LogSource:
    """
    Create the S3 server access log source.

    Args:
        anonymize_client_ip: Replace the last part of remote IPs with 'xxx'

    Returns:
        Configured LogSource
    """
    return build_log_source(
        name="s3",
        raw_key_pattern=S3_SERVER_RAW_KEY_PATTERN,
        unprocessed_filter=UnprocessedObjectsFilter(prefix=f"{FOLDER_UNPROCESSED}/"),
        table_schema=S3_SERVER_ACCESS_LOG_SCHEMA,
        column_transformation_rules={
            "remote_ip": (
                anonymize_ip_expression("remote_ip") if anonymize_client_ip else None
            ),
        },
    )
