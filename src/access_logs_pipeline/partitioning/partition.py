"""
Hourly partitions of the access log tables.

A partition is identified by zero-padded year, month, day and hour strings,
which is how both access log tables declare their partition keys.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterator, Optional

from ..utils.sql import quote_literal

_WIDTHS = {"year": 4, "month": 2, "day": 2, "hour": 2}


@dataclass(frozen=True, order=True)
class Partition:
    """
    One hour of access logs.

    Attributes:
        year: Four digit year, e.g. '2022'
        month: Two digit month, e.g. '07'
        day: Two digit day of month, e.g. '20'
        hour: Two digit UTC hour, e.g. '13'
    """

    year: str
    month: str
    day: str
    hour: str

    def __post_init__(self):
        for name, width in _WIDTHS.items():
            value = str(getattr(self, name))
            if not value.isdigit():
                raise ValueError(f"Partition {name} must be numeric, got {value!r}")
            # frozen dataclass: normalize through object.__setattr__
            object.__setattr__(self, name, value.zfill(width))

    @classmethod
    def from_datetime(cls, dt: datetime) -> "Partition":
        """
        Get the partition containing a point in time.

        Naive datetimes are taken to be UTC; aware ones are converted.
        """
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        dt = dt.astimezone(timezone.utc)
        return cls(
            year=f"{dt.year:04d}",
            month=f"{dt.month:02d}",
            day=f"{dt.day:02d}",
            hour=f"{dt.hour:02d}",
        )

    @classmethod
    def from_match(cls, match: re.Match) -> "Partition":
        """Build a partition from the named groups of a raw key match."""
        groups = match.groupdict()
        return cls(
            year=groups["year"],
            month=groups["month"],
            day=groups["day"],
            hour=groups["hour"],
        )

    @property
    def start(self) -> datetime:
        """First instant of the partition (UTC)."""
        return datetime(
            int(self.year),
            int(self.month),
            int(self.day),
            int(self.hour),
            tzinfo=timezone.utc,
        )

    def shifted(self, hours: int) -> "Partition":
        """Get the partition a number of hours before or after this one."""
        return Partition.from_datetime(self.start + timedelta(hours=hours))

    def to_spec(self) -> str:
        """Render as the body of a PARTITION (...) clause."""
        return ", ".join(
            f"{name} = {quote_literal(value)}" for name, value in self.items()
        )

    def to_predicate(self) -> str:
        """Render as a WHERE predicate selecting this partition."""
        return " AND ".join(
            f"{name} = {quote_literal(value)}" for name, value in self.items()
        )

    def to_prefix(self, base: str = "") -> str:
        """Render as the Hive style object prefix `year=../month=../day=../hour=..`."""
        path = "/".join(f"{name}={value}" for name, value in self.items())
        base = base.strip("/")
        return f"{base}/{path}" if base else path

    def items(self) -> list[tuple[str, str]]:
        return [
            ("year", self.year),
            ("month", self.month),
            ("day", self.day),
            ("hour", self.hour),
        ]

    def to_dict(self) -> dict:
        return dict(self.items())

    def __str__(self) -> str:
        return f"{self.year}-{self.month}-{self.day}T{self.hour}"


def iter_partitions(start: datetime, end: datetime) -> Iterator[Partition]:
    """
    Iterate the hourly partitions between two points in time (inclusive).

    Raises:
        ValueError: If start is after end
    """
    first = Partition.from_datetime(start)
    last = Partition.from_datetime(end)
    if first > last:
        raise ValueError(f"Invalid range: start ({first}) > end ({last})")

    current = first
    while current <= last:
        yield current
        current = current.shifted(1)


@dataclass
class PartitionRunResult:
    """Result of a partition registration or transformation run."""

    job: str
    partition: Partition
    statement: str = ""
    succeeded: bool = False
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    purged_objects: int = 0
    error: Optional[str] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/serialization."""
        return {
            "job": self.job,
            "partition": self.partition.to_dict(),
            "succeeded": self.succeeded,
            "started_at": self.started_at.isoformat(),
            "completed_at": (
                self.completed_at.isoformat() if self.completed_at else None
            ),
            "duration_seconds": self.duration_seconds,
            "purged_objects": self.purged_objects,
            "error": self.error,
        }
