"""
Shared fixtures for unit and integration tests.

Provides:
- In-memory S3 client (copy, delete, list, batch delete)
- Scripted Athena client (statements recorded, states replayed)
- Fixed clock and recording sleep
"""

import itertools
import threading
from datetime import datetime, timezone

import pytest
from botocore.exceptions import ClientError

# =============================================================================
# FAKE AWS CLIENTS
# =============================================================================


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeS3Client:
    """
    Minimal in-memory stand-in for a boto3 S3 client.

    Keys listed in `fail_copy` / `fail_delete` raise an AccessDenied
    ClientError on the corresponding call.
    """

    def __init__(self):
        self.objects: dict[tuple[str, str], bytes] = {}
        self.calls: list[tuple] = []
        self.fail_copy: set[str] = set()
        self.fail_delete: set[str] = set()
        self._lock = threading.Lock()

    def put(self, bucket: str, key: str, body: bytes = b"log") -> None:
        self.objects[(bucket, key)] = body

    def keys(self, bucket: str) -> list[str]:
        return sorted(key for b, key in self.objects if b == bucket)

    def copy_object(self, Bucket, Key, CopySource):
        with self._lock:
            self.calls.append(("copy_object", CopySource["Key"], Key))
            if CopySource["Key"] in self.fail_copy:
                raise _client_error("AccessDenied", "CopyObject")
            source = (CopySource["Bucket"], CopySource["Key"])
            if source not in self.objects:
                raise _client_error("NoSuchKey", "CopyObject")
            self.objects[(Bucket, Key)] = self.objects[source]
        return {}

    def delete_object(self, Bucket, Key):
        with self._lock:
            self.calls.append(("delete_object", Key))
            if Key in self.fail_delete:
                raise _client_error("AccessDenied", "DeleteObject")
            self.objects.pop((Bucket, Key), None)
        return {}

    def get_paginator(self, operation_name):
        assert operation_name == "list_objects_v2"
        return _FakeListPaginator(self)

    def delete_objects(self, Bucket, Delete):
        with self._lock:
            keys = [item["Key"] for item in Delete["Objects"]]
            self.calls.append(("delete_objects", len(keys)))
            for key in keys:
                self.objects.pop((Bucket, key), None)
        return {}


class _FakeListPaginator:
    page_size = 2

    def __init__(self, client: FakeS3Client):
        self._client = client

    def paginate(self, Bucket, Prefix=""):
        keys = [key for key in self._client.keys(Bucket) if key.startswith(Prefix)]
        if not keys:
            yield {"KeyCount": 0}
            return
        for start in range(0, len(keys), self.page_size):
            yield {
                "Contents": [{"Key": key} for key in keys[start : start + self.page_size]]
            }


class FakeAthenaClient:
    """
    Scripted stand-in for a boto3 Athena client.

    Each started execution replays `states` one poll at a time; the last
    state repeats once the script is exhausted.
    """

    def __init__(self, states=("SUCCEEDED",), reason=None):
        self.states = list(states)
        self.reason = reason
        self.statements: list[str] = []
        self.start_calls: list[dict] = []
        self.polls: dict[str, int] = {}
        self._ids = itertools.count(1)

    def start_query_execution(self, **kwargs):
        execution_id = f"exec-{next(self._ids)}"
        self.start_calls.append(kwargs)
        self.statements.append(kwargs["QueryString"])
        self.polls[execution_id] = 0
        return {"QueryExecutionId": execution_id}

    def get_query_execution(self, QueryExecutionId):
        index = self.polls[QueryExecutionId]
        self.polls[QueryExecutionId] = index + 1
        state = self.states[min(index, len(self.states) - 1)]
        status = {"State": state}
        if self.reason and state in ("FAILED", "CANCELLED"):
            status["StateChangeReason"] = self.reason
        return {"QueryExecution": {"QueryExecutionId": QueryExecutionId, "Status": status}}


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def s3_client():
    """Empty in-memory S3 client."""
    return FakeS3Client()


@pytest.fixture
def athena_client():
    """Athena client whose executions succeed on the first poll."""
    return FakeAthenaClient()


@pytest.fixture
def make_athena_client():
    """Factory for Athena clients replaying the given states."""
    return FakeAthenaClient


@pytest.fixture
def sleeps():
    """List collecting the delays passed to a recording sleep function."""
    return []


@pytest.fixture
def record_sleep(sleeps):
    """Sleep function that records instead of waiting."""
    return sleeps.append


@pytest.fixture
def fixed_now():
    """2022-07-20 12:55 UTC, five minutes before hour 13."""
    return datetime(2022, 7, 20, 12, 55, tzinfo=timezone.utc)


@pytest.fixture
def clock(fixed_now):
    """Clock returning fixed_now."""
    return lambda: fixed_now


@pytest.fixture
def cloudfront_key():
    return "unprocessed/E24DN41CDZRLM8.2022-07-20-13.d94543d0.gz"


@pytest.fixture
def make_s3_event():
    """Factory building an object-created notification for the given keys."""

    def build(bucket: str, *keys: str) -> dict:
        return {
            "Records": [
                {
                    "eventSource": "aws:s3",
                    "eventName": "ObjectCreated:Put",
                    "s3": {"bucket": {"name": bucket}, "object": {"key": key}},
                }
                for key in keys
            ]
        }

    return build
