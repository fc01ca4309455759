"""
Unit tests for grouping raw access logs by date.

Tests event parsing, target key derivation, relocation order and the
collection of per-object failures.
"""

import logging

import pytest

from access_logs_pipeline.exceptions import InvalidEventError, ObjectRelocationError
from access_logs_pipeline.grouping import (
    GroupingResult,
    LogGrouper,
    S3ObjectRef,
    build_target_key,
    parse_s3_event,
)
from access_logs_pipeline.partitioning import Partition
from access_logs_pipeline.sources import CLOUDFRONT_RAW_KEY_PATTERN
from access_logs_pipeline.storage import ObjectStore
from access_logs_pipeline.utils import compile_key_pattern

BUCKET = "access-logs"
GROUPED_KEY = "by-date/year=2022/month=07/day=20/hour=13/E24DN41CDZRLM8.2022-07-20-13.d94543d0.gz"


@pytest.fixture
def grouper(s3_client):
    return LogGrouper(
        target_folder="by-date",
        key_pattern=compile_key_pattern(CLOUDFRONT_RAW_KEY_PATTERN),
        object_store=ObjectStore(client=s3_client),
        max_workers=4,
    )


class TestParseS3Event:
    """Tests for parse_s3_event."""

    def test_extracts_bucket_and_key(self, make_s3_event, cloudfront_key):
        objects = parse_s3_event(make_s3_event(BUCKET, cloudfront_key))

        assert objects == [S3ObjectRef(bucket=BUCKET, key=cloudfront_key)]

    def test_decodes_url_encoded_keys(self, make_s3_event):
        """Notifications encode keys; '+' stands for a space."""
        objects = parse_s3_event(
            make_s3_event(BUCKET, "unprocessed/my+logs/E1.2022-07-20-13.a%3Db.gz")
        )

        assert objects[0].key == "unprocessed/my logs/E1.2022-07-20-13.a=b.gz"

    def test_event_without_records(self):
        assert parse_s3_event({}) == []

    def test_malformed_record_raises(self):
        with pytest.raises(InvalidEventError) as exc_info:
            parse_s3_event({"Records": [{"s3": {"bucket": {"name": BUCKET}}}]})

        assert exc_info.value.field == "Records"

    def test_basename(self, cloudfront_key):
        ref = S3ObjectRef(bucket=BUCKET, key=cloudfront_key)

        assert ref.basename == "E24DN41CDZRLM8.2022-07-20-13.d94543d0.gz"


class TestTargetKey:
    """Tests for target key derivation."""

    def test_build_target_key(self):
        partition = Partition("2022", "7", "20", "3")

        assert (
            build_target_key("by-date", partition, "a.gz")
            == "by-date/year=2022/month=07/day=20/hour=03/a.gz"
        )

    def test_cloudfront_example(self, grouper, cloudfront_key):
        assert grouper.target_key_for(cloudfront_key) == GROUPED_KEY

    def test_target_folder_slashes_are_stripped(self, s3_client, cloudfront_key):
        grouper = LogGrouper(
            "/by-date/",
            compile_key_pattern(CLOUDFRONT_RAW_KEY_PATTERN),
            object_store=ObjectStore(client=s3_client),
        )

        assert grouper.target_key_for(cloudfront_key) == GROUPED_KEY

    def test_non_matching_key(self, grouper):
        assert grouper.target_key_for("unprocessed/readme.txt") is None

    def test_date_comes_from_key_not_from_clock(self, grouper):
        """A late delivery of a 2019 log still lands in its 2019 partition."""
        key = "unprocessed/E1.2019-12-31-23.abc.gz"

        assert grouper.target_key_for(key).startswith(
            "by-date/year=2019/month=12/day=31/hour=23/"
        )


class TestGroup:
    """Tests for LogGrouper.group."""

    def test_moves_matching_object(self, grouper, s3_client, cloudfront_key):
        s3_client.put(BUCKET, cloudfront_key)

        result = grouper.group([S3ObjectRef(BUCKET, cloudfront_key)])

        assert result.success
        assert result.moved == [(cloudfront_key, GROUPED_KEY)]
        assert s3_client.keys(BUCKET) == [GROUPED_KEY]

    def test_copies_before_deleting(self, grouper, s3_client, cloudfront_key):
        s3_client.put(BUCKET, cloudfront_key)

        grouper.group([S3ObjectRef(BUCKET, cloudfront_key)])

        assert s3_client.calls == [
            ("copy_object", cloudfront_key, GROUPED_KEY),
            ("delete_object", cloudfront_key),
        ]

    def test_skips_non_matching_keys(self, grouper, s3_client, caplog):
        s3_client.put(BUCKET, "unprocessed/readme.txt")

        with caplog.at_level(logging.DEBUG):
            result = grouper.group([S3ObjectRef(BUCKET, "unprocessed/readme.txt")])

        assert result.success
        assert result.skipped == ["unprocessed/readme.txt"]
        assert s3_client.calls == []
        assert s3_client.keys(BUCKET) == ["unprocessed/readme.txt"]
        assert "unprocessed/readme.txt" in caplog.text

    def test_failed_copy_keeps_source(self, grouper, s3_client, cloudfront_key):
        s3_client.put(BUCKET, cloudfront_key)
        s3_client.fail_copy.add(cloudfront_key)

        result = grouper.group([S3ObjectRef(BUCKET, cloudfront_key)])

        assert not result.success
        assert [key for key, _ in result.failed] == [cloudfront_key]
        assert s3_client.keys(BUCKET) == [cloudfront_key]
        assert ("delete_object", cloudfront_key) not in s3_client.calls

    def test_collects_every_failure(self, grouper, s3_client):
        keys = [f"unprocessed/E1.2022-07-20-{hour:02d}.x{hour}.gz" for hour in range(6)]
        for key in keys:
            s3_client.put(BUCKET, key)
        s3_client.fail_copy.update({keys[1], keys[4]})

        result = grouper.group([S3ObjectRef(BUCKET, key) for key in keys])

        assert len(result.moved) == 4
        assert sorted(key for key, _ in result.failed) == sorted([keys[1], keys[4]])

        with pytest.raises(ObjectRelocationError) as exc_info:
            result.raise_for_failures()
        assert sorted(exc_info.value.failed_keys) == sorted([keys[1], keys[4]])

    def test_failed_delete_is_reported(self, grouper, s3_client, cloudfront_key):
        s3_client.put(BUCKET, cloudfront_key)
        s3_client.fail_delete.add(cloudfront_key)

        result = grouper.group([S3ObjectRef(BUCKET, cloudfront_key)])

        assert [key for key, _ in result.failed] == [cloudfront_key]
        # the copy exists; a redelivery overwrites it
        assert GROUPED_KEY in s3_client.keys(BUCKET)

    def test_redelivered_object_is_moved_again(self, grouper, s3_client, cloudfront_key):
        s3_client.put(BUCKET, cloudfront_key)
        grouper.group([S3ObjectRef(BUCKET, cloudfront_key)])
        s3_client.put(BUCKET, cloudfront_key, b"new")

        result = grouper.group([S3ObjectRef(BUCKET, cloudfront_key)])

        assert result.success
        assert s3_client.keys(BUCKET) == [GROUPED_KEY]
        assert s3_client.objects[(BUCKET, GROUPED_KEY)] == b"new"

    def test_already_moved_object_is_skipped(self, grouper, s3_client, cloudfront_key):
        """A redelivered notification for a moved object is not an error."""
        s3_client.put(BUCKET, cloudfront_key)
        event_objects = [S3ObjectRef(BUCKET, cloudfront_key)]
        grouper.group(event_objects)

        result = grouper.group(event_objects)

        assert result.success
        assert result.skipped == [cloudfront_key]
        assert s3_client.keys(BUCKET) == [GROUPED_KEY]

    def test_empty_batch(self, grouper):
        result = grouper.group([])

        assert result.to_dict() == {
            "success": True,
            "moved_count": 0,
            "skipped_count": 0,
            "failed_count": 0,
            "failed_keys": [],
        }


class TestGroupingResult:
    """Tests for GroupingResult."""

    def test_to_dict(self):
        result = GroupingResult(
            moved=[("a", "b")],
            skipped=["c"],
            failed=[("d", RuntimeError("boom"))],
        )

        assert result.to_dict() == {
            "success": False,
            "moved_count": 1,
            "skipped_count": 1,
            "failed_count": 1,
            "failed_keys": ["d"],
        }

    def test_raise_for_failures_without_failures(self):
        GroupingResult(moved=[("a", "b")]).raise_for_failures()
