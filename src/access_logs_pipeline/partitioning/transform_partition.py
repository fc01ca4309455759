"""
Transformation of grouped partitions into the Parquet table.

Runs shortly after the top of every hour and copies the partition of two
hours ago from the grouped (text) table into the Parquet table. Columns are
copied verbatim or rewritten by per-column SQL expressions, e.g. to
anonymize client IP addresses or drop cookies that are not whitelisted.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Optional, Sequence

from ..athena.executor import QueryExecutor
from ..config.constants import PARTITION_TRANSFORMATION_LAG
from ..exceptions import InvalidEventError
from ..storage.s3 import ObjectStore, S3Location
from ..utils.sql import invalid_identifiers, qualified_table_name
from .partition import Partition, PartitionRunResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransformPartitionEvent:
    """
    Payload of the scheduled transformation.

    Attributes:
        column_names: Every column of the target table, regular columns
            followed by partition keys, in schema order
        column_transformations: Column name -> SQL expression; None or a
            missing entry means the column is copied unchanged
    """

    column_names: tuple[str, ...]
    column_transformations: Mapping[str, Optional[str]] = field(default_factory=dict)

    def __post_init__(self):
        if not self.column_names:
            raise InvalidEventError("At least one column is required", field="columnNames")

        invalid = invalid_identifiers(self.column_names)
        if invalid:
            raise InvalidEventError(
                f"Invalid column name(s): {', '.join(map(repr, invalid))}",
                field="columnNames",
            )

        duplicates = sorted(
            {name for name in self.column_names if self.column_names.count(name) > 1}
        )
        if duplicates:
            raise InvalidEventError(
                f"Duplicate column name(s): {', '.join(duplicates)}",
                field="columnNames",
            )

        unknown = [
            name for name in self.column_transformations if name not in self.column_names
        ]
        if unknown:
            logger.warning(
                f"Ignoring transformations for unknown column(s): {', '.join(unknown)}"
            )

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "TransformPartitionEvent":
        """
        Create an event from the scheduler payload.

        Expects `{"columnNames": [...], "columnTransformations": {...}}`.

        Raises:
            InvalidEventError: If the payload is malformed
        """
        if not isinstance(payload, Mapping):
            raise InvalidEventError(f"Event must be an object, got {type(payload).__name__}")

        column_names = payload.get("columnNames")
        if not isinstance(column_names, (list, tuple)) or not all(
            isinstance(name, str) for name in column_names
        ):
            raise InvalidEventError("Expected a list of column names", field="columnNames")

        transformations = payload.get("columnTransformations") or {}
        if not isinstance(transformations, Mapping) or not all(
            value is None or isinstance(value, str) for value in transformations.values()
        ):
            raise InvalidEventError(
                "Expected a mapping of column name to SQL expression or null",
                field="columnTransformations",
            )

        return cls(
            column_names=tuple(column_names),
            column_transformations=dict(transformations),
        )

    def to_dict(self) -> dict:
        return {
            "columnNames": list(self.column_names),
            "columnTransformations": dict(self.column_transformations),
        }


def build_column_expression(
    column: str, column_transformations: Mapping[str, Optional[str]]
) -> str:
    """Get the SELECT expression of a column: `<expr> AS <column>` or the bare column."""
    expression = column_transformations.get(column)
    return f"{expression} AS {column}" if expression else column


def build_select_list(
    column_names: Sequence[str], column_transformations: Mapping[str, Optional[str]]
) -> str:
    """
    Build the SELECT list of the transformation, one entry per column in order.

    Example:
        >>> build_select_list(["request_ip", "status"], {"request_ip": "f(request_ip)"})
        'f(request_ip) AS request_ip, status'
    """
    return ", ".join(
        build_column_expression(column, column_transformations) for column in column_names
    )


def build_insert_statement(
    database: str,
    source_table: str,
    target_table: str,
    event: TransformPartitionEvent,
    partition: Partition,
) -> str:
    """Build the INSERT ... SELECT statement copying one partition."""
    return (
        f"INSERT INTO {qualified_table_name(database, target_table)} "
        f"({','.join(event.column_names)})\n"
        f"SELECT {build_select_list(event.column_names, event.column_transformations)}\n"
        f"FROM {qualified_table_name(database, source_table)}\n"
        f"WHERE {partition.to_predicate()};"
    )


class PartitionTransformer:
    """
    Copies closed partitions of the grouped table into the Parquet table.

    When a target location is given, objects already stored for the target
    partition are deleted before the insert, so running the same hour twice
    replaces its rows instead of appending duplicates.
    """

    def __init__(
        self,
        executor: QueryExecutor,
        source_table: str,
        target_table: str,
        target_location: Optional[S3Location] = None,
        object_store: Optional[ObjectStore] = None,
        lag: timedelta = PARTITION_TRANSFORMATION_LAG,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        """
        Args:
            executor: Executor bound to the workgroup and database
            source_table: Grouped access log table
            target_table: Parquet access log table
            target_location: S3 location of the target table (enables purging)
            object_store: Object store used for purging
            lag: How far behind now the transformed partition lies
            clock: Returns the current time
        """
        if target_location is not None and object_store is None:
            object_store = ObjectStore()

        self.executor = executor
        self.source_table = source_table
        self.target_table = target_table
        self.target_location = target_location
        self.lag = lag
        self._object_store = object_store
        self._clock = clock

    def previous_partition(self) -> Partition:
        """Get the partition of the hour `lag` before now (UTC)."""
        return Partition.from_datetime(self._clock() - self.lag)

    def transform(
        self,
        event: TransformPartitionEvent,
        partition: Optional[Partition] = None,
    ) -> PartitionRunResult:
        """
        Transform a partition, by default the one two hours ago.

        A missed cycle can be repeated later since grouped logs outlive the
        lag, so a statement that does not complete in time is only logged.

        Returns:
            Result whose `succeeded` flag is False if the statement timed out

        Raises:
            QueryExecutionError: If Athena reports FAILED or CANCELLED
        """
        partition = partition or self.previous_partition()
        statement = build_insert_statement(
            self.executor.database,
            self.source_table,
            self.target_table,
            event,
            partition,
        )
        result = PartitionRunResult(
            job="transform-partition", partition=partition, statement=statement
        )

        logger.info(f"Transforming partition {partition.to_dict()}")

        if self.target_location is not None:
            result.purged_objects = self.purge(partition)
        else:
            logger.warning(
                "No target table location configured - appending without removing "
                "rows of earlier runs for this partition"
            )

        result.succeeded = self.executor.execute(statement, fail_on_timeout=False)
        result.completed_at = datetime.now(timezone.utc)
        if result.succeeded:
            logger.info(f"Successfully transformed partition {partition.to_dict()}")
        return result

    def purge(self, partition: Partition) -> int:
        """Delete the target table's objects of a partition. Returns the count."""
        prefix = self.target_location.join(partition.to_prefix())
        deleted = self._object_store.delete_prefix(self.target_location.bucket, prefix)
        if deleted:
            logger.info(
                f"Removed {deleted} object(s) of earlier runs below "
                f"s3://{self.target_location.bucket}/{prefix}"
            )
        return deleted
