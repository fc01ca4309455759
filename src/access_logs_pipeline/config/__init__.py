"""Configuration module."""

from .config_loader import (
    decrypt_sops_file,
    load_config_file,
    load_config_values,
)
from .constants import (
    DEFAULT_QUERY_MAX_ATTEMPTS,
    DEFAULT_GROUPING_MAX_WORKERS,
    DEFAULT_QUERY_POLL_DELAY_SECONDS,
    FOLDER_UNPROCESSED,
    PARTITION_CREATION_LEAD,
    PARTITION_KEYS,
    PARTITION_TRANSFORMATION_LAG,
)
from .settings import (
    CreatePartitionSettings,
    GroupByDateSettings,
    QuerySettings,
    TransformPartitionSettings,
    load_settings,
)

__all__ = [
    # Bucket layout
    "FOLDER_UNPROCESSED",
    # Partitioning
    "PARTITION_KEYS",
    "PARTITION_CREATION_LEAD",
    "PARTITION_TRANSFORMATION_LAG",
    # Query polling
    "DEFAULT_QUERY_MAX_ATTEMPTS",
    "DEFAULT_QUERY_POLL_DELAY_SECONDS",
    "DEFAULT_GROUPING_MAX_WORKERS",
    # Settings
    "QuerySettings",
    "GroupByDateSettings",
    "CreatePartitionSettings",
    "TransformPartitionSettings",
    "load_settings",
    # Config loading
    "load_config_values",
    "load_config_file",
    "decrypt_sops_file",
]
