"""
Table schemas of the access log tables.

The grouped (tab/space separated text) table and the transformed (Parquet)
table of a log source share one column layout; both are partitioned by
year, month, day and hour.
"""

from dataclasses import dataclass

from ..config.constants import PARTITION_KEYS


@dataclass(frozen=True)
class Column:
    """A catalog column: name and Hive type."""

    name: str
    type: str


@dataclass(frozen=True)
class TableSchema:
    """Regular columns followed by partition keys, in declaration order."""

    columns: tuple[Column, ...]
    partition_keys: tuple[Column, ...]

    @property
    def column_names(self) -> list[str]:
        """All column names: regular columns first, then partition keys."""
        return [column.name for column in self.columns + self.partition_keys]

    def to_dict(self) -> dict:
        return {
            "columns": [{"name": c.name, "type": c.type} for c in self.columns],
            "partition_keys": [
                {"name": c.name, "type": c.type} for c in self.partition_keys
            ],
        }


def _columns(spec: dict[str, str]) -> tuple[Column, ...]:
    return tuple(Column(name=name, type=dtype) for name, dtype in spec.items())


ACCESS_LOG_PARTITION_KEYS = _columns({key: "string" for key in PARTITION_KEYS})

# =============================================================================
# CloudFront Standard Access Logs
# =============================================================================

CLOUDFRONT_ACCESS_LOG_COLUMNS = {
    "date": "date",
    "time": "string",
    "location": "string",
    "bytes": "bigint",
    "request_ip": "string",
    "method": "string",
    "host": "string",
    "uri": "string",
    "status": "int",
    "referrer": "string",
    "user_agent": "string",
    "query_string": "string",
    "cookie": "string",
    "result_type": "string",
    "request_id": "string",
    "host_header": "string",
    "request_protocol": "string",
    "request_bytes": "bigint",
    "time_taken": "float",
    "xforwarded_for": "string",
    "ssl_protocol": "string",
    "ssl_cipher": "string",
    "response_result_type": "string",
    "http_version": "string",
    "fle_status": "string",
    "fle_encrypted_fields": "int",
    "c_port": "int",
    "time_to_first_byte": "float",
    "x_edge_detailed_result_type": "string",
    "sc_content_type": "string",
    "sc_content_len": "bigint",
    "sc_range_start": "bigint",
    "sc_range_end": "bigint",
}

CLOUDFRONT_ACCESS_LOG_SCHEMA = TableSchema(
    columns=_columns(CLOUDFRONT_ACCESS_LOG_COLUMNS),
    partition_keys=ACCESS_LOG_PARTITION_KEYS,
)

# =============================================================================
# S3 Server Access Logs
# =============================================================================

S3_SERVER_ACCESS_LOG_COLUMNS = {
    "bucket_owner": "string",
    "bucket": "string",
    "request_datetime": "string",
    "remote_ip": "string",
    "requester": "string",
    "request_id": "string",
    "operation": "string",
    "key": "string",
    "request_uri": "string",
    "http_status": "string",
    "error_code": "string",
    "bytes_sent": "bigint",
    "object_size": "bigint",
    "total_time": "string",
    "turn_around_time": "string",
    "referrer": "string",
    "user_agent": "string",
    "version_id": "string",
    "host_id": "string",
    "sig_version": "string",
    "cipher_suite": "string",
    "auth_type": "string",
    "endpoint": "string",
    "tls_version": "string",
    "access_point_arn": "string",
    "acl_required": "string",
}

S3_SERVER_ACCESS_LOG_SCHEMA = TableSchema(
    columns=_columns(S3_SERVER_ACCESS_LOG_COLUMNS),
    partition_keys=ACCESS_LOG_PARTITION_KEYS,
)
