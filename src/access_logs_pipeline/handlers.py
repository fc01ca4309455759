"""
Lambda handlers of the access log pipeline.

Each builder takes validated settings (and optionally clients for testing)
and returns a `handler(event, context)` callable. Construction happens once
per cold start; the returned handler is reused across invocations.

Errors are logged and re-raised so the platform's retry policy applies.
"""

import json
import logging
from datetime import datetime
from typing import Any, Callable, Optional

from .athena.executor import QueryExecutor
from .config.settings import (
    CreatePartitionSettings,
    GroupByDateSettings,
    TransformPartitionSettings,
)
from .grouping.group_by_date import LogGrouper, parse_s3_event
from .partitioning.create_partition import PartitionRegistrar
from .partitioning.transform_partition import PartitionTransformer, TransformPartitionEvent
from .storage.s3 import ObjectStore, S3Location

logger = logging.getLogger(__name__)

Handler = Callable[[Any, Any], dict]


def build_group_by_date_handler(
    settings: GroupByDateSettings,
    object_store: Optional[ObjectStore] = None,
) -> Handler:
    """
    Build the handler of the object-created notification.

    Raises (from the handler):
        InvalidEventError: If the event is not an S3 notification
        ObjectRelocationError: If any object could not be moved
    """
    grouper = LogGrouper(
        target_folder=settings.target_folder,
        key_pattern=settings.key_pattern,
        object_store=object_store,
        max_workers=settings.max_workers,
    )

    def handler(event, context=None) -> dict:
        try:
            objects = parse_s3_event(event)
            result = grouper.group(objects)
            logger.info(json.dumps(result.to_dict()))
            result.raise_for_failures()
            return result.to_dict()
        except Exception:
            logger.exception("Grouping access logs by date failed")
            raise

    return handler


def build_create_partition_handler(
    settings: CreatePartitionSettings,
    executor: Optional[QueryExecutor] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> Handler:
    """Build the handler of the hourly partition registration schedule."""
    executor = executor or QueryExecutor.from_settings(settings.query)
    registrar_options = {"clock": clock} if clock else {}
    registrar = PartitionRegistrar(executor, table=settings.table, **registrar_options)

    def handler(event=None, context=None) -> dict:
        try:
            result = registrar.register()
        except Exception:
            logger.exception("Creating the upcoming partition failed")
            raise
        logger.info(json.dumps(result.to_dict()))
        return result.to_dict()

    return handler


def build_transform_partition_handler(
    settings: TransformPartitionSettings,
    executor: Optional[QueryExecutor] = None,
    object_store: Optional[ObjectStore] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> Handler:
    """
    Build the handler of the hourly partition transformation schedule.

    The event carries the target table's columns and the column
    transformation rules, see TransformPartitionEvent.
    """
    executor = executor or QueryExecutor.from_settings(settings.query)
    target_location = (
        S3Location.from_uri(settings.target_table_location)
        if settings.target_table_location
        else None
    )
    transformer_options = {"clock": clock} if clock else {}
    transformer = PartitionTransformer(
        executor,
        source_table=settings.source_table,
        target_table=settings.target_table,
        target_location=target_location,
        object_store=object_store,
        **transformer_options,
    )

    def handler(event, context=None) -> dict:
        try:
            transform_event = TransformPartitionEvent.from_dict(event)
            result = transformer.transform(transform_event)
        except Exception:
            logger.exception("Transforming the previous partition failed")
            raise
        logger.info(json.dumps(result.to_dict()))
        return result.to_dict()

    return handler
