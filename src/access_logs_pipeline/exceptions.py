"""
Custom exceptions for the access log pipeline.

Provides specialized exception classes for the failure modes of the
grouping, partition registration and partition transformation jobs.
"""

from typing import Optional


class PipelineError(Exception):
    """
    Base exception for all pipeline-related errors.

    All other pipeline exceptions inherit from this class,
    allowing for broad exception catching when needed.
    """

    pass


class ConfigurationError(PipelineError):
    """
    Raised when required settings are missing or invalid.

    Collects every problem found while loading settings so that a
    misconfigured function reports all of them at once.

    Attributes:
        errors: List of human readable configuration problems
    """

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with every configuration problem."""
        if not self.errors:
            return "Invalid configuration"
        details = "\n".join(f"  - {error}" for error in self.errors)
        return f"Invalid configuration ({len(self.errors)} problem(s)):\n{details}"


class InvalidEventError(PipelineError):
    """
    Raised when a trigger payload cannot be interpreted.

    Attributes:
        field: The payload field that failed validation (optional)
        message: Detailed error message
    """

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        self.message = message
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.field:
            return f"{self.message} (field='{self.field}')"
        return self.message


class QueryExecutionError(PipelineError):
    """
    Raised when the query engine reports a FAILED or CANCELLED execution.

    Attributes:
        statement: The SQL statement that was submitted
        execution_id: Query execution id returned at submission
        state: Terminal state reported by the engine
        reason: State change reason reported by the engine (optional)
    """

    def __init__(
        self,
        statement: str,
        execution_id: Optional[str] = None,
        state: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        self.statement = statement
        self.execution_id = execution_id
        self.state = state
        self.reason = reason
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = ["Command execution failed!"]
        if self.execution_id:
            parts.append(f"execution_id={self.execution_id}")
        if self.state:
            parts.append(f"state={self.state}")
        if self.reason:
            parts.append(f"reason: {self.reason}")
        return " ".join(parts) + f"\nQuery:\n{self.statement}"


class QueryTimeoutError(PipelineError):
    """
    Raised when no terminal state was observed within the polling budget.

    Attributes:
        statement: The SQL statement that was submitted
        execution_id: Query execution id returned at submission
        attempts: Number of status polls performed
        poll_delay: Delay between polls in seconds
    """

    def __init__(
        self,
        statement: str,
        execution_id: Optional[str],
        attempts: int,
        poll_delay: float,
    ):
        self.statement = statement
        self.execution_id = execution_id
        self.attempts = attempts
        self.poll_delay = poll_delay
        super().__init__(self._format_message())

    @property
    def waited_seconds(self) -> float:
        return self.attempts * self.poll_delay

    def _format_message(self) -> str:
        return (
            f"Status of query {self.execution_id} unknown - polled {self.attempts} "
            f"times over {self.waited_seconds:.1f}s but command did not complete"
            f"\nQuery:\n{self.statement}"
        )


class ObjectRelocationError(PipelineError):
    """
    Raised when one or more log objects could not be copied or deleted.

    Attributes:
        failures: List of (object key, error) pairs
    """

    def __init__(self, failures: list[tuple[str, BaseException]]):
        self.failures = list(failures)
        super().__init__(self._format_message())

    @property
    def failed_keys(self) -> list[str]:
        return [key for key, _ in self.failures]

    def _format_message(self) -> str:
        details = "\n".join(
            f"  - {key}: {type(error).__name__}: {error}" for key, error in self.failures
        )
        return f"Failed to relocate {len(self.failures)} object(s):\n{details}"


class UnknownLogSourceError(PipelineError):
    """
    Raised when a log source is not registered.

    Attributes:
        source_name: The name of the missing log source
        available_sources: List of registered log source names
    """

    def __init__(self, source_name: str, available_sources: Optional[list[str]] = None):
        self.source_name = source_name
        self.available_sources = available_sources or []
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.available_sources:
            available = ", ".join(sorted(self.available_sources))
            return (
                f"Unknown log source: '{self.source_name}'. "
                f"Available log sources: {available}"
            )
        return f"Unknown log source: '{self.source_name}'. No log sources registered."
