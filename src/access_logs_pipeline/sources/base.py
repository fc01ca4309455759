"""
Log source strategies.

A log source bundles everything that differs between access log producers:
how raw log object keys look, which bucket notifications select them, the
table layout, and the column transformation rules applied when a partition
is rewritten to Parquet. The pipeline itself stays format-agnostic.
"""

import re
from dataclasses import dataclass, field
from typing import Mapping, Optional

from ..partitioning.partition import Partition
from ..schemas.access_logs import TableSchema
from ..utils.patterns import compile_key_pattern

# Column name -> SQL expression; None means the column passes through unchanged
ColumnTransformationRules = Mapping[str, Optional[str]]


@dataclass(frozen=True)
class UnprocessedObjectsFilter:
    """Key filter of the object-created notification that triggers grouping."""

    prefix: str
    suffix: str = ""

    def to_dict(self) -> dict:
        return {"prefix": self.prefix, "suffix": self.suffix}


@dataclass(frozen=True)
class LogSource:
    """
    Capabilities of one access log producer.

    Attributes:
        name: Registry identifier (e.g. 'cloudfront')
        raw_key_pattern: Pattern with named groups year, month, day and hour
        unprocessed_filter: Notification filter for raw log objects
        table_schema: Columns and partition keys of the access log tables
        column_transformation_rules: Overrides applied when transforming
    """

    name: str
    raw_key_pattern: re.Pattern
    unprocessed_filter: UnprocessedObjectsFilter
    table_schema: TableSchema
    column_transformation_rules: ColumnTransformationRules = field(
        default_factory=dict
    )

    def match_key(self, key: str) -> Optional[Partition]:
        """Get the partition encoded in a raw log key, or None if it doesn't match."""
        match = self.raw_key_pattern.search(key)
        return Partition.from_match(match) if match else None

    def to_transform_event(self) -> dict:
        """
        Build the payload of the scheduled partition transformation.

        Computed at deploy time from the target table's schema.
        """
        return {
            "columnNames": self.table_schema.column_names,
            "columnTransformations": dict(self.column_transformation_rules),
        }


def build_log_source(
    name: str,
    raw_key_pattern: str,
    unprocessed_filter: UnprocessedObjectsFilter,
    table_schema: TableSchema,
    column_transformation_rules: Optional[ColumnTransformationRules] = None,
) -> LogSource:
    """
    Create a log source, compiling and checking its key pattern.

    Raises:
        ValueError: If the key pattern is invalid or a rule names an unknown column
    """
    rules = dict(column_transformation_rules or {})
    unknown = [column for column in rules if column not in table_schema.column_names]
    if unknown:
        raise ValueError(
            f"Column transformation rules for unknown column(s): {', '.join(unknown)}"
        )
    return LogSource(
        name=name,
        raw_key_pattern=compile_key_pattern(raw_key_pattern),
        unprocessed_filter=unprocessed_filter,
        table_schema=table_schema,
        column_transformation_rules=rules,
    )


def anonymize_ip_expression(column: str) -> str:
    """
    Expression replacing the last part of an IP address with 'xxx'.

    Covers the last octet of IPv4 and the last group of IPv6 addresses.
    """
    return f"regexp_replace({column}, '(.*\\.|:).*', '$1xxx')"


def build_transform_event(source: LogSource) -> dict:
    """Get the scheduled transformation payload of a log source."""
    return source.to_transform_event()
