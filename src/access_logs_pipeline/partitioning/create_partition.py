"""
Registration of upcoming partitions.

Runs shortly before the top of every hour and adds the partition of the
upcoming hour to the grouped access log table, so the logs arriving during
that hour can be queried right away.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from ..athena.executor import QueryExecutor
from ..config.constants import PARTITION_CREATION_LEAD
from ..utils.sql import qualified_table_name
from .partition import Partition, PartitionRunResult

logger = logging.getLogger(__name__)


def build_add_partition_statement(database: str, table: str, partition: Partition) -> str:
    """
    Build the idempotent statement registering a partition.

    Example:
        ALTER TABLE logs_db.logs_by_date ADD IF NOT EXISTS
        PARTITION (year = '2022', month = '07', day = '20', hour = '13');
    """
    return (
        f"ALTER TABLE {qualified_table_name(database, table)} ADD IF NOT EXISTS\n"
        f"PARTITION ({partition.to_spec()});"
    )


class PartitionRegistrar:
    """Adds the partition of the upcoming hour to the grouped access log table."""

    def __init__(
        self,
        executor: QueryExecutor,
        table: str,
        lead: timedelta = PARTITION_CREATION_LEAD,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        """
        Args:
            executor: Executor bound to the workgroup and database
            table: Grouped access log table
            lead: How far ahead of now the registered partition lies
            clock: Returns the current time
        """
        self.executor = executor
        self.table = table
        self.lead = lead
        self._clock = clock

    def next_partition(self) -> Partition:
        """Get the partition of the hour starting `lead` from now (UTC)."""
        return Partition.from_datetime(self._clock() + self.lead)

    def register(self, partition: Optional[Partition] = None) -> PartitionRunResult:
        """
        Register a partition, by default the upcoming one.

        A missing partition silently hides that hour from every query, so an
        unresolved status is treated as an error.

        Raises:
            QueryExecutionError: If Athena reports FAILED or CANCELLED
            QueryTimeoutError: If the statement did not complete in time
        """
        partition = partition or self.next_partition()
        statement = build_add_partition_statement(
            self.executor.database, self.table, partition
        )
        result = PartitionRunResult(
            job="create-partition", partition=partition, statement=statement
        )

        logger.info(f"Creating partition {partition.to_dict()}")
        result.succeeded = self.executor.execute(statement, fail_on_timeout=True)
        result.completed_at = datetime.now(timezone.utc)
        logger.info("Partition successfully created")
        return result
