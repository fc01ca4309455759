"""Athena query execution."""

from .executor import QueryExecutor, QueryState

__all__ = [
    "QueryExecutor",
    "QueryState",
]
