"""Entrypoint of the function transforming the previous partition to Parquet."""

from ..config.settings import TransformPartitionSettings, load_settings
from ..handlers import build_transform_partition_handler
from ..utils.logging_utils import setup_logging

setup_logging()

settings = load_settings(TransformPartitionSettings)
handler = build_transform_partition_handler(settings)
