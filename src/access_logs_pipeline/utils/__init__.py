"""Utility functions for the access log pipeline."""

from .logging_utils import setup_logging
from .patterns import REQUIRED_GROUPS, compile_key_pattern, normalize_key_pattern
from .sql import (
    invalid_identifiers,
    is_valid_identifier,
    qualified_table_name,
    quote_literal,
)

__all__ = [
    # Logging
    "setup_logging",
    # Key patterns
    "REQUIRED_GROUPS",
    "compile_key_pattern",
    "normalize_key_pattern",
    # SQL identifiers
    "invalid_identifiers",
    "is_valid_identifier",
    "qualified_table_name",
    "quote_literal",
]
