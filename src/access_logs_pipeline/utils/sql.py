"""
SQL helpers shared by the partition statements.

Catalog, table and column names are interpolated into statements, so they
are checked against a conservative identifier pattern first.
"""

import re
from typing import Iterable

# Athena doesn't support dashes in database/table names
IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def is_valid_identifier(name: str) -> bool:
    """Check if a name can be used unquoted as a database, table or column name."""
    return bool(name) and IDENTIFIER_PATTERN.fullmatch(name) is not None


def invalid_identifiers(names: Iterable[str]) -> list[str]:
    """Return the names that are not valid identifiers, preserving order."""
    return [name for name in names if not is_valid_identifier(name)]


def qualified_table_name(database: str, table: str) -> str:
    """Get the `database.table` reference used in statements."""
    return f"{database}.{table}"


def quote_literal(value: str) -> str:
    """Quote a string literal, escaping embedded single quotes."""
    escaped = str(value).replace("'", "''")
    return f"'{escaped}'"

