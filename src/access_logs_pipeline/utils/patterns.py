"""
Raw log key pattern handling.

Key patterns are supplied by the infrastructure that deploys the functions
and may use the `(?<name>...)` named group syntax, which Python spells
`(?P<name>...)`.
"""

import re

REQUIRED_GROUPS = ("year", "month", "day", "hour")

# `(?<name>` but not the lookbehind assertions `(?<=` and `(?<!`
_NAMED_GROUP_SHORTHAND = re.compile(r"\(\?<(?![=!])([A-Za-z_][A-Za-z0-9_]*)>")


def normalize_key_pattern(pattern: str) -> str:
    """Rewrite `(?<name>...)` named groups to the `(?P<name>...)` form."""
    return _NAMED_GROUP_SHORTHAND.sub(r"(?P<\1>", pattern)


def compile_key_pattern(pattern: str) -> re.Pattern:
    """
    Compile a raw log key pattern and check its named groups.

    Args:
        pattern: Regular expression with `year`, `month`, `day` and `hour` groups

    Returns:
        Compiled pattern

    Raises:
        ValueError: If the pattern does not compile or lacks a required group
    """
    try:
        compiled = re.compile(normalize_key_pattern(pattern))
    except re.error as e:
        raise ValueError(f"Invalid key pattern {pattern!r}: {e}") from e

    missing = [name for name in REQUIRED_GROUPS if name not in compiled.groupindex]
    if missing:
        raise ValueError(
            f"Key pattern {pattern!r} lacks named group(s): {', '.join(missing)}"
        )
    return compiled
