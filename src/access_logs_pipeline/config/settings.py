"""
Function settings and configuration management.

Each Lambda function reads a flat set of keys (environment variables or a
YAML config file) once at cold start. Every missing or invalid key is
collected and reported in a single ConfigurationError.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Type, TypeVar

from ..exceptions import ConfigurationError, PipelineError
from ..utils.patterns import compile_key_pattern
from ..utils.sql import is_valid_identifier
from .config_loader import load_config_values
from .constants import (
    DEFAULT_GROUPING_MAX_WORKERS,
    DEFAULT_QUERY_MAX_ATTEMPTS,
    DEFAULT_QUERY_POLL_DELAY_SECONDS,
)

S = TypeVar("S")


class _ValueReader:
    """Reads flat config values and records every problem found."""

    def __init__(self, values: Mapping[str, str]):
        self.values = values
        self.errors: list[str] = []

    def required(self, key: str, strip_chars: str = "") -> str:
        value = (self.values.get(key) or "").strip()
        if strip_chars:
            value = value.strip(strip_chars)
        if not value:
            self.errors.append(f"Required setting {key} missing")
        return value

    def optional(self, key: str, default: str = "") -> str:
        value = (self.values.get(key) or "").strip()
        return value or default

    def positive_int(self, key: str, default: int) -> int:
        raw = self.optional(key)
        if not raw:
            return default
        try:
            value = int(raw)
        except ValueError:
            self.errors.append(f"{key} must be an integer, got {raw!r}")
            return default
        if value < 1:
            self.errors.append(f"{key} must be >= 1, got {value}")
            return default
        return value

    def non_negative_seconds_from_ms(self, key: str, default: float) -> float:
        raw = self.optional(key)
        if not raw:
            return default
        try:
            value = float(raw)
        except ValueError:
            self.errors.append(f"{key} must be a number of milliseconds, got {raw!r}")
            return default
        if value < 0:
            self.errors.append(f"{key} must be >= 0, got {raw}")
            return default
        return value / 1000.0


# =============================================================================
# Query Settings
# =============================================================================


@dataclass
class QuerySettings:
    """Athena execution context and polling budget shared by both partition jobs."""

    workgroup: str
    database: str
    max_attempts: int = DEFAULT_QUERY_MAX_ATTEMPTS
    poll_delay_seconds: float = DEFAULT_QUERY_POLL_DELAY_SECONDS

    def validate(self) -> list[str]:
        """Validate settings values. Returns list of errors."""
        errors = []
        if self.database and not is_valid_identifier(self.database):
            errors.append(f"DATABASE is not a valid identifier: {self.database!r}")
        if self.max_attempts < 1:
            errors.append(f"QUERY_MAX_ATTEMPTS must be >= 1, got {self.max_attempts}")
        if self.poll_delay_seconds < 0:
            errors.append(
                f"QUERY_POLL_DELAY_MS must be >= 0, got {self.poll_delay_seconds * 1000}"
            )
        return errors

    @classmethod
    def _read(cls, reader: _ValueReader) -> "QuerySettings":
        return cls(
            workgroup=reader.required("WORKGROUP"),
            database=reader.required("DATABASE"),
            max_attempts=reader.positive_int(
                "QUERY_MAX_ATTEMPTS", DEFAULT_QUERY_MAX_ATTEMPTS
            ),
            poll_delay_seconds=reader.non_negative_seconds_from_ms(
                "QUERY_POLL_DELAY_MS", DEFAULT_QUERY_POLL_DELAY_SECONDS
            ),
        )

    def to_dict(self) -> dict:
        return {
            "workgroup": self.workgroup,
            "database": self.database,
            "max_attempts": self.max_attempts,
            "poll_delay_seconds": self.poll_delay_seconds,
        }


# =============================================================================
# Function Settings
# =============================================================================


@dataclass
class GroupByDateSettings:
    """
    Settings of the function that groups raw logs by date.

    `raw_access_log_file_pattern` may be omitted when `log_source` names a
    registered log source; the source's own key pattern is used then.
    """

    target_folder: str
    raw_access_log_file_pattern: str
    max_workers: int = DEFAULT_GROUPING_MAX_WORKERS
    log_source: str = ""

    def validate(self) -> list[str]:
        """Validate settings values. Returns list of errors."""
        errors = []
        if self.raw_access_log_file_pattern:
            try:
                compile_key_pattern(self.raw_access_log_file_pattern)
            except ValueError as e:
                errors.append(f"RAW_ACCESS_LOG_FILE_PATTERN: {e}")
        if self.max_workers < 1:
            errors.append(f"GROUPING_MAX_WORKERS must be >= 1, got {self.max_workers}")
        return errors

    @property
    def key_pattern(self) -> re.Pattern:
        return compile_key_pattern(self.raw_access_log_file_pattern)

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "GroupByDateSettings":
        """
        Create settings from flat config values.

        Raises:
            ConfigurationError: Listing every missing or invalid key
        """
        reader = _ValueReader(values)
        # without leading and trailing slashes
        target_folder = reader.required("TARGET_FOLDER", strip_chars="/")
        log_source = reader.optional("LOG_SOURCE")

        pattern = reader.optional("RAW_ACCESS_LOG_FILE_PATTERN")
        if not pattern and log_source:
            pattern = _pattern_of_log_source(log_source, reader)
        elif not pattern:
            reader.required("RAW_ACCESS_LOG_FILE_PATTERN")

        settings = cls(
            target_folder=target_folder,
            raw_access_log_file_pattern=pattern,
            max_workers=reader.positive_int(
                "GROUPING_MAX_WORKERS", DEFAULT_GROUPING_MAX_WORKERS
            ),
            log_source=log_source,
        )
        _raise_for_errors(reader.errors + settings.validate())
        return settings

    def to_dict(self) -> dict:
        return {
            "target_folder": self.target_folder,
            "raw_access_log_file_pattern": self.raw_access_log_file_pattern,
            "max_workers": self.max_workers,
            "log_source": self.log_source,
        }


@dataclass
class CreatePartitionSettings:
    """Settings of the function that registers upcoming partitions."""

    query: QuerySettings
    table: str

    def validate(self) -> list[str]:
        """Validate settings values. Returns list of errors."""
        errors = self.query.validate()
        if self.table and not is_valid_identifier(self.table):
            errors.append(f"TABLE is not a valid identifier: {self.table!r}")
        return errors

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "CreatePartitionSettings":
        """
        Create settings from flat config values.

        Raises:
            ConfigurationError: Listing every missing or invalid key
        """
        reader = _ValueReader(values)
        settings = cls(
            query=QuerySettings._read(reader),
            table=reader.required("TABLE"),
        )
        _raise_for_errors(reader.errors + settings.validate())
        return settings

    def to_dict(self) -> dict:
        return {**self.query.to_dict(), "table": self.table}


@dataclass
class TransformPartitionSettings:
    """
    Settings of the function that transforms partitions to Parquet.

    When `target_table_location` (the `s3://` location of the target table)
    is set, the target partition's objects are removed before each insert so
    a re-run replaces the hour instead of duplicating it.
    """

    query: QuerySettings
    source_table: str
    target_table: str
    target_table_location: Optional[str] = None

    def validate(self) -> list[str]:
        """Validate settings values. Returns list of errors."""
        errors = self.query.validate()
        for key, table in (
            ("SOURCE_TABLE", self.source_table),
            ("TARGET_TABLE", self.target_table),
        ):
            if table and not is_valid_identifier(table):
                errors.append(f"{key} is not a valid identifier: {table!r}")
        if self.target_table_location and not self.target_table_location.startswith(
            "s3://"
        ):
            errors.append(
                "TARGET_TABLE_LOCATION must be an s3:// URI, "
                f"got {self.target_table_location!r}"
            )
        return errors

    @classmethod
    def from_mapping(cls, values: Mapping[str, str]) -> "TransformPartitionSettings":
        """
        Create settings from flat config values.

        Raises:
            ConfigurationError: Listing every missing or invalid key
        """
        reader = _ValueReader(values)
        settings = cls(
            query=QuerySettings._read(reader),
            source_table=reader.required("SOURCE_TABLE"),
            target_table=reader.required("TARGET_TABLE"),
            target_table_location=reader.optional("TARGET_TABLE_LOCATION") or None,
        )
        _raise_for_errors(reader.errors + settings.validate())
        return settings

    def to_dict(self) -> dict:
        return {
            **self.query.to_dict(),
            "source_table": self.source_table,
            "target_table": self.target_table,
            "target_table_location": self.target_table_location,
        }


# =============================================================================
# Loading
# =============================================================================


def load_settings(
    settings_class: Type[S],
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> S:
    """
    Load and validate the settings of one function.

    Args:
        settings_class: One of the function settings classes
        config_path: Optional YAML config file (else PIPELINE_CONFIG_FILE)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Validated settings instance

    Raises:
        ConfigurationError: Listing every missing or invalid key
    """
    values = load_config_values(config_path=config_path, environ=environ)
    return settings_class.from_mapping(values)


def _pattern_of_log_source(name: str, reader: _ValueReader) -> str:
    from ..sources.registry import LogSourceRegistry

    try:
        return LogSourceRegistry.get_log_source(name).raw_key_pattern.pattern
    except PipelineError as e:
        reader.errors.append(f"LOG_SOURCE: {e}")
        return ""


def _raise_for_errors(errors: list[str]) -> None:
    if errors:
        raise ConfigurationError(errors)
