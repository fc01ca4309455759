"""Entrypoint of the function registering the upcoming partition."""

from ..config.settings import CreatePartitionSettings, load_settings
from ..handlers import build_create_partition_handler
from ..utils.logging_utils import setup_logging

setup_logging()

settings = load_settings(CreatePartitionSettings)
handler = build_create_partition_handler(settings)
