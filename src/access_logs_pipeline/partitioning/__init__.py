"""
Hourly partition management for the access log tables.

Usage:
    from access_logs_pipeline.athena import QueryExecutor
    from access_logs_pipeline.partitioning import PartitionRegistrar

    executor = QueryExecutor(workgroup="logs-workgroup", database="logs_db")
    PartitionRegistrar(executor, table="logs_by_date").register()
"""

from .create_partition import PartitionRegistrar, build_add_partition_statement
from .partition import Partition, PartitionRunResult, iter_partitions
from .transform_partition import (
    PartitionTransformer,
    TransformPartitionEvent,
    build_column_expression,
    build_insert_statement,
    build_select_list,
)

__all__ = [
    # Partitions
    "Partition",
    "PartitionRunResult",
    "iter_partitions",
    # Registration
    "PartitionRegistrar",
    "build_add_partition_statement",
    # Transformation
    "PartitionTransformer",
    "TransformPartitionEvent",
    "build_column_expression",
    "build_select_list",
    "build_insert_statement",
]
