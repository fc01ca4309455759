#!/usr/bin/env python3
"""
Backfill access log partitions for a range of hours.

Re-registers partitions of the grouped table and/or re-transforms them into
the Parquet table, e.g. after a missed schedule or a failed transformation.
Settings are read the same way as by the Lambda functions (environment or
PIPELINE_CONFIG_FILE).

Usage:
    # Register and transform every hour of a day
    python scripts/backfill_partitions.py --start 2022-07-20T00 --end 2022-07-20T23

    # Only re-run the transformation, keeping selected cookies
    python scripts/backfill_partitions.py --start 2022-07-20T13 --end 2022-07-20T15 \\
        --skip-create --cookie session_id --cookie consent

    # Dry run (print the statements without executing them)
    python scripts/backfill_partitions.py --start 2022-07-20T13 --end 2022-07-20T13 --dry-run
"""

import argparse
import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from dateutil import parser as date_parser

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from access_logs_pipeline.athena import QueryExecutor
from access_logs_pipeline.config import (
    CreatePartitionSettings,
    TransformPartitionSettings,
    load_settings,
)
from access_logs_pipeline.exceptions import PipelineError
from access_logs_pipeline.partitioning import (
    Partition,
    PartitionRegistrar,
    PartitionTransformer,
    TransformPartitionEvent,
    build_add_partition_statement,
    build_insert_statement,
    iter_partitions,
)
from access_logs_pipeline.sources import get_log_source, list_log_sources
from access_logs_pipeline.storage import S3Location
from access_logs_pipeline.utils import setup_logging

logger = logging.getLogger(__name__)


@dataclass
class BackfillResult:
    """Result of a backfill run."""

    success: bool = False
    partitions_created: int = 0
    partitions_transformed: int = 0
    partitions_timed_out: list = field(default_factory=list)
    errors: list = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "partitions_created": self.partitions_created,
            "partitions_transformed": self.partitions_transformed,
            "partitions_timed_out": self.partitions_timed_out,
            "errors": self.errors,
        }


def parse_hour(value: str) -> datetime:
    """Parse an operator supplied time; naive values are taken as UTC."""
    try:
        parsed = date_parser.isoparse(value)
    except ValueError:
        try:
            parsed = date_parser.parse(value)
        except (ValueError, OverflowError):
            raise argparse.ArgumentTypeError(
                f"Invalid time: {value}. Use e.g. 2022-07-20T13 or '2022-07-20 13:00'"
            )
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def run_backfill(
    partitions: list[Partition],
    registrar: Optional[PartitionRegistrar],
    transformer: Optional[PartitionTransformer],
    event: Optional[TransformPartitionEvent],
) -> BackfillResult:
    """
    Register and/or transform partitions one after the other.

    A failing hour is recorded and the remaining hours still run.

    Args:
        partitions: Hours to process, oldest first
        registrar: Registrar, or None to skip registration
        transformer: Transformer, or None to skip transformation
        event: Column list and rules of the transformation

    Returns:
        BackfillResult with per-step counts
    """
    result = BackfillResult()

    for partition in partitions:
        try:
            if registrar is not None:
                registrar.register(partition)
                result.partitions_created += 1

            if transformer is not None:
                run = transformer.transform(event, partition)
                if run.succeeded:
                    result.partitions_transformed += 1
                else:
                    result.partitions_timed_out.append(str(partition))
        except Exception as e:
            logger.exception(f"Partition {partition} failed: {e}")
            result.errors.append(f"{partition}: {e}")

    result.success = not result.errors and not result.partitions_timed_out
    return result


def print_statements(
    partitions: list[Partition],
    create_settings: Optional[CreatePartitionSettings],
    transform_settings: Optional[TransformPartitionSettings],
    event: Optional[TransformPartitionEvent],
) -> None:
    for partition in partitions:
        if create_settings is not None:
            print(
                build_add_partition_statement(
                    create_settings.query.database, create_settings.table, partition
                )
            )
        if transform_settings is not None:
            print(
                build_insert_statement(
                    transform_settings.query.database,
                    transform_settings.source_table,
                    transform_settings.target_table,
                    event,
                    partition,
                )
            )


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Backfill access log partitions for a range of hours",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Register and transform every hour of a day
  python scripts/backfill_partitions.py --start 2022-07-20T00 --end 2022-07-20T23

  # Only re-run the transformation of S3 server access logs
  python scripts/backfill_partitions.py --start 2022-07-20T13 --end 2022-07-20T15 \\
      --log-source s3 --skip-create

  # Dry run (print the statements without executing them)
  python scripts/backfill_partitions.py --start 2022-07-20T13 --end 2022-07-20T13 --dry-run
        """,
    )

    # Required hour range
    parser.add_argument(
        "--start",
        type=parse_hour,
        required=True,
        help="First hour (inclusive, UTC unless an offset is given)",
    )
    parser.add_argument(
        "--end",
        type=parse_hour,
        required=True,
        help="Last hour (inclusive, UTC unless an offset is given)",
    )

    # Transformation options
    parser.add_argument(
        "--log-source",
        default="cloudfront",
        choices=list_log_sources(),
        help="Log source whose schema and rules are used (default: cloudfront)",
    )
    parser.add_argument(
        "--cookie",
        action="append",
        default=[],
        help="Cookie to keep (repeatable, CloudFront only; default: keep all)",
    )
    parser.add_argument(
        "--keep-client-ip",
        action="store_true",
        help="Do not anonymize client IP addresses",
    )

    # Processing options
    parser.add_argument(
        "--skip-create",
        action="store_true",
        help="Do not register the partitions",
    )
    parser.add_argument(
        "--skip-transform",
        action="store_true",
        help="Do not transform the partitions",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="YAML config file (default: PIPELINE_CONFIG_FILE or environment)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the statements without executing them",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    setup_logging("DEBUG" if args.verbose else None)

    if args.skip_create and args.skip_transform:
        parser.error("Nothing to do: both --skip-create and --skip-transform given")

    try:
        partitions = list(iter_partitions(args.start, args.end))
    except ValueError as e:
        parser.error(str(e))

    options = {"anonymize_client_ip": not args.keep_client_ip}
    if args.cookie:
        if args.log_source != "cloudfront":
            parser.error("--cookie is only supported for the cloudfront log source")
        options["cookie_whitelist"] = args.cookie

    try:
        create_settings = (
            None if args.skip_create else load_settings(CreatePartitionSettings, args.config)
        )
        transform_settings = (
            None
            if args.skip_transform
            else load_settings(TransformPartitionSettings, args.config)
        )
        event = None
        if transform_settings is not None:
            source = get_log_source(args.log_source, **options)
            event = TransformPartitionEvent.from_dict(source.to_transform_event())
    except PipelineError as e:
        print(f"\n❌ {e}")
        sys.exit(1)

    print("=" * 60)
    print("ACCESS LOG PARTITION BACKFILL")
    print("=" * 60)
    print(f"Hours: {partitions[0]} .. {partitions[-1]} ({len(partitions)} partitions)")
    print(f"Register: {'no' if args.skip_create else 'yes'}")
    print(f"Transform: {'no' if args.skip_transform else args.log_source}")
    print("=" * 60)

    if args.dry_run:
        print_statements(partitions, create_settings, transform_settings, event)
        return

    registrar = None
    if create_settings is not None:
        registrar = PartitionRegistrar(
            QueryExecutor.from_settings(create_settings.query), create_settings.table
        )

    transformer = None
    if transform_settings is not None:
        location = transform_settings.target_table_location
        transformer = PartitionTransformer(
            QueryExecutor.from_settings(transform_settings.query),
            source_table=transform_settings.source_table,
            target_table=transform_settings.target_table,
            target_location=S3Location.from_uri(location) if location else None,
        )

    result = run_backfill(partitions, registrar, transformer, event)
    print(json.dumps(result.to_dict(), indent=2))

    if result.success:
        print("\n✅ Backfill completed successfully")
    else:
        print("\n❌ Backfill finished with errors")
        sys.exit(1)


if __name__ == "__main__":
    main()
