"""
Unit tests for log sources, their registry and table schemas.
"""

import pytest

from access_logs_pipeline.exceptions import UnknownLogSourceError
from access_logs_pipeline.partitioning import Partition, build_select_list
from access_logs_pipeline.schemas import (
    ACCESS_LOG_PARTITION_KEYS,
    CLOUDFRONT_ACCESS_LOG_SCHEMA,
    S3_SERVER_ACCESS_LOG_SCHEMA,
    Column,
    TableSchema,
)
from access_logs_pipeline.sources import (
    LogSourceRegistry,
    UnprocessedObjectsFilter,
    anonymize_ip_expression,
    build_log_source,
    build_transform_event,
    cloudfront_log_source,
    cookie_whitelist_expression,
    get_log_source,
    list_log_sources,
    s3_server_log_source,
)


class TestTableSchemas:
    """Tests for the access log table schemas."""

    def test_partition_keys_come_last(self):
        for schema in (CLOUDFRONT_ACCESS_LOG_SCHEMA, S3_SERVER_ACCESS_LOG_SCHEMA):
            assert schema.column_names[-4:] == ["year", "month", "day", "hour"]
            assert [key.name for key in schema.partition_keys] == [
                "year",
                "month",
                "day",
                "hour",
            ]

    def test_cloudfront_columns(self):
        names = CLOUDFRONT_ACCESS_LOG_SCHEMA.column_names

        assert names[:2] == ["date", "time"]
        assert "request_ip" in names
        assert "cookie" in names
        assert len(names) == len(set(names))

    def test_s3_server_columns(self):
        names = S3_SERVER_ACCESS_LOG_SCHEMA.column_names

        assert "remote_ip" in names
        assert len(names) == len(set(names))

    def test_to_dict(self):
        schema = TableSchema(
            columns=(Column("status", "int"),), partition_keys=ACCESS_LOG_PARTITION_KEYS
        )

        data = schema.to_dict()

        assert data["columns"][0] == {"name": "status", "type": "int"}
        assert data["partition_keys"][0] == {"name": "year", "type": "string"}


class TestCloudFrontSource:
    """Tests for the CloudFront log source."""

    def test_matches_example_key(self):
        source = cloudfront_log_source()

        assert source.match_key(
            "unprocessed/E24DN41CDZRLM8.2022-07-20-13.d94543d0.gz"
        ) == Partition("2022", "07", "20", "13")

    def test_does_not_match_other_objects(self):
        source = cloudfront_log_source()

        assert source.match_key("unprocessed/readme.txt") is None
        assert source.match_key("unprocessed/E1.2022-07-20-13.abc") is None

    def test_unprocessed_filter(self):
        source = cloudfront_log_source()

        assert source.unprocessed_filter.to_dict() == {
            "prefix": "unprocessed/",
            "suffix": ".gz",
        }

    def test_ip_anonymized_by_default(self):
        source = cloudfront_log_source()

        assert source.column_transformation_rules == {
            "request_ip": anonymize_ip_expression("request_ip"),
            "cookie": None,
        }

    def test_ip_anonymization_can_be_disabled(self):
        source = cloudfront_log_source(anonymize_client_ip=False)

        assert source.column_transformation_rules == {"request_ip": None, "cookie": None}

    def test_cookie_whitelist(self):
        source = cloudfront_log_source(cookie_whitelist=["session_id", "consent"])

        assert source.column_transformation_rules["cookie"] == (
            "replace( array_join( regexp_extract_all( cookie, "
            "'(session_id|consent)=[^;]+' ), ';' ), '%2522', '\"' )"
        )

    def test_invalid_cookie_name(self):
        with pytest.raises(ValueError, match="cookie"):
            cookie_whitelist_expression(["a'; DROP"])

    def test_dashed_cookie_name(self):
        assert "(cf-session)" in cookie_whitelist_expression(["cf-session"])


class TestS3ServerSource:
    """Tests for the S3 server access log source."""

    def test_matches_server_access_log_key(self):
        source = s3_server_log_source()

        assert source.match_key(
            "unprocessed/2022-07-20-13-45-12-8A2F4B6C1D3E5F70"
        ) == Partition("2022", "07", "20", "13")

    def test_anonymizes_remote_ip(self):
        source = s3_server_log_source()

        assert source.column_transformation_rules == {
            "remote_ip": anonymize_ip_expression("remote_ip")
        }

    def test_no_suffix_filter(self):
        assert s3_server_log_source().unprocessed_filter.suffix == ""


class TestTransformEvent:
    """Tests for the deploy-time transformation payload."""

    def test_payload_lists_full_schema(self):
        source = cloudfront_log_source()

        payload = build_transform_event(source)

        assert payload["columnNames"] == CLOUDFRONT_ACCESS_LOG_SCHEMA.column_names
        assert payload["columnTransformations"]["cookie"] is None

    def test_select_list_of_payload(self):
        payload = cloudfront_log_source().to_transform_event()

        select = build_select_list(
            payload["columnNames"], payload["columnTransformations"]
        )

        assert select.startswith("date, time, ")
        assert f"{anonymize_ip_expression('request_ip')} AS request_ip" in select
        assert ", cookie, " in select
        assert select.endswith("year, month, day, hour")


class TestBuildLogSource:
    """Tests for build_log_source."""

    def test_rejects_rules_for_unknown_columns(self):
        with pytest.raises(ValueError, match="unknown column"):
            build_log_source(
                name="custom",
                raw_key_pattern=r"(?P<year>\d{4})(?P<month>\d{2})(?P<day>\d{2})(?P<hour>\d{2})",
                unprocessed_filter=UnprocessedObjectsFilter(prefix="unprocessed/"),
                table_schema=S3_SERVER_ACCESS_LOG_SCHEMA,
                column_transformation_rules={"request_ip": "NULL"},
            )

    def test_rejects_pattern_without_groups(self):
        with pytest.raises(ValueError):
            build_log_source(
                name="custom",
                raw_key_pattern=r"\d+",
                unprocessed_filter=UnprocessedObjectsFilter(prefix="unprocessed/"),
                table_schema=S3_SERVER_ACCESS_LOG_SCHEMA,
            )


class TestLogSourceRegistry:
    """Tests for LogSourceRegistry."""

    def test_shipped_sources(self, registered_sources):
        assert {"cloudfront", "s3"} <= set(list_log_sources())

    def test_get_with_options(self, registered_sources):
        source = get_log_source("CloudFront", cookie_whitelist=["session_id"])

        assert source.name == "cloudfront"
        assert source.column_transformation_rules["cookie"] is not None

    def test_unknown_source(self, registered_sources):
        with pytest.raises(UnknownLogSourceError) as exc_info:
            get_log_source("akamai")

        assert exc_info.value.source_name == "akamai"
        assert "cloudfront" in str(exc_info.value)

    def test_register_decorator(self, registered_sources):
        @LogSourceRegistry.register("test-source")
        def test_source():
            return s3_server_log_source()

        try:
            assert LogSourceRegistry.is_registered("TEST-SOURCE")
            assert get_log_source("test-source").name == "s3"
        finally:
            LogSourceRegistry._factories.pop("test-source", None)

    def test_factory_must_be_callable(self):
        with pytest.raises(TypeError):
            LogSourceRegistry.register_factory("broken", "not callable")
