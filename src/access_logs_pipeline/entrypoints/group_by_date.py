"""Entrypoint of the function grouping raw access logs by date."""

from ..config.settings import GroupByDateSettings, load_settings
from ..handlers import build_group_by_date_handler
from ..utils.logging_utils import setup_logging

setup_logging()

settings = load_settings(GroupByDateSettings)
handler = build_group_by_date_handler(settings)
