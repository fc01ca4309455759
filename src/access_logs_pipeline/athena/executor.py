"""
Athena statement execution with bounded status polling.

A statement is submitted once, then its execution status is polled a fixed
number of times with a fixed delay in between. The worst-case wait is
max_attempts x poll_delay, which keeps function invocations short.
"""

import logging
import time
from enum import Enum
from typing import Any, Callable, Optional

from ..config.constants import (
    DEFAULT_QUERY_MAX_ATTEMPTS,
    DEFAULT_QUERY_POLL_DELAY_SECONDS,
)
from ..exceptions import QueryExecutionError, QueryTimeoutError

logger = logging.getLogger(__name__)


class QueryState(Enum):
    """Execution states reported by Athena, plus the local TIMED_OUT outcome."""

    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
    # No terminal state observed within the polling budget
    TIMED_OUT = "TIMED_OUT"

    @property
    def is_terminal(self) -> bool:
        return self in (QueryState.SUCCEEDED, QueryState.FAILED, QueryState.CANCELLED)

    @property
    def is_failure(self) -> bool:
        return self in (QueryState.FAILED, QueryState.CANCELLED)


class QueryExecutor:
    """
    Runs SQL statements in an Athena workgroup and waits for them to finish.

    Example:
        executor = QueryExecutor(workgroup="logs-workgroup", database="logs_db")
        if executor.execute("ALTER TABLE ...", fail_on_timeout=True):
            ...
    """

    def __init__(
        self,
        workgroup: str,
        database: str,
        client: Optional[Any] = None,
        max_attempts: int = DEFAULT_QUERY_MAX_ATTEMPTS,
        poll_delay: float = DEFAULT_QUERY_POLL_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the executor.

        Args:
            workgroup: Athena workgroup to run statements in
            database: Catalog database used as query execution context
            client: boto3 Athena client (shared default client if None)
            max_attempts: Maximum number of status polls per statement
            poll_delay: Seconds to wait between two status polls
            sleep: Function used to wait between polls
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        if poll_delay < 0:
            raise ValueError(f"poll_delay must be >= 0, got {poll_delay}")

        if client is None:
            from ..utils.aws_clients import get_athena_client

            client = get_athena_client()

        self.workgroup = workgroup
        self.database = database
        self.max_attempts = max_attempts
        self.poll_delay = poll_delay
        self._client = client
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings, client: Optional[Any] = None) -> "QueryExecutor":
        """Create an executor from QuerySettings."""
        return cls(
            workgroup=settings.workgroup,
            database=settings.database,
            client=client,
            max_attempts=settings.max_attempts,
            poll_delay=settings.poll_delay_seconds,
        )

    def execute(self, statement: str, fail_on_timeout: bool) -> bool:
        """
        Execute a statement and wait for its completion.

        Args:
            statement: SQL statement to run
            fail_on_timeout: True to raise if the statement did not complete
                in time, False to only log the error

        Returns:
            True on success, False if the statement timed out and
            fail_on_timeout was False

        Raises:
            QueryExecutionError: If Athena reports FAILED or CANCELLED
            QueryTimeoutError: If the statement timed out and fail_on_timeout is set
        """
        execution_id = self.submit(statement)
        state = self.wait(statement, execution_id)

        if state == QueryState.SUCCEEDED:
            logger.info(f"Query {execution_id} completed successfully")
            return True

        timeout = QueryTimeoutError(
            statement=statement,
            execution_id=execution_id,
            attempts=self.max_attempts,
            poll_delay=self.poll_delay,
        )
        if fail_on_timeout:
            raise timeout
        logger.error(str(timeout))
        return False

    def submit(self, statement: str) -> str:
        """Start the execution of a statement and return its execution id."""
        logger.info(f"Executing statement in workgroup {self.workgroup}: {statement}")
        response = self._client.start_query_execution(
            QueryString=statement,
            WorkGroup=self.workgroup,
            QueryExecutionContext={"Database": self.database},
        )
        execution_id = response["QueryExecutionId"]
        logger.debug(f"Query execution started: {execution_id}")
        return execution_id

    def wait(self, statement: str, execution_id: str) -> QueryState:
        """
        Poll the execution status until it is terminal or the budget is spent.

        Returns:
            QueryState.SUCCEEDED, or QueryState.TIMED_OUT if no terminal state
            was observed after max_attempts polls

        Raises:
            QueryExecutionError: On FAILED or CANCELLED, without further polling
        """
        for attempt in range(1, self.max_attempts + 1):
            state, reason = self._get_state(execution_id)
            logger.debug(
                f"Query {execution_id} state {state.value} "
                f"(attempt {attempt}/{self.max_attempts})"
            )

            if state.is_terminal:
                if state.is_failure:
                    raise QueryExecutionError(
                        statement=statement,
                        execution_id=execution_id,
                        state=state.value,
                        reason=reason,
                    )
                return state

            if attempt < self.max_attempts:
                self._sleep(self.poll_delay)

        return QueryState.TIMED_OUT

    def _get_state(self, execution_id: str) -> tuple[QueryState, Optional[str]]:
        response = self._client.get_query_execution(QueryExecutionId=execution_id)
        status = response["QueryExecution"]["Status"]
        raw_state = status["State"]
        try:
            state = QueryState(raw_state)
        except ValueError:
            logger.warning(f"Unknown query state {raw_state!r}, treating as running")
            state = QueryState.RUNNING
        return state, status.get("StateChangeReason")
