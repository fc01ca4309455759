"""
Logging setup for the Lambda functions and operator scripts.
"""

import logging
import os
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Chatty third-party loggers kept at WARNING unless explicitly lowered
_QUIET_LOGGERS = ("boto3", "botocore", "urllib3", "s3transfer")


def setup_logging(level: Optional[Union[str, int]] = None) -> None:
    """
    Configure the root logger.

    The Lambda runtime installs its own handler on the root logger; in that
    case only the level is adjusted. Elsewhere a stream handler is added.

    Args:
        level: Log level name or number; defaults to LOG_LEVEL or INFO
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
    else:
        logging.basicConfig(level=level, format=LOG_FORMAT)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
