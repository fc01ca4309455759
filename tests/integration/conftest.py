"""
Shared fixtures for integration tests.

Provides:
- Fake AWS clients installed as the shared default clients
- Environment for each Lambda function
- Loader that (re)imports an entrypoint module under the current environment
"""

import importlib
import sys

import pytest

from access_logs_pipeline.utils import aws_clients

# =============================================================================
# ENVIRONMENT FIXTURES
# =============================================================================

GROUP_BY_DATE_ENV = {
    "TARGET_FOLDER": "by-date",
    "RAW_ACCESS_LOG_FILE_PATTERN": (
        r"[\w/]+\.(?<year>\d{4})-(?<month>\d{2})-(?<day>\d{2})-(?<hour>\d{2})\.\w+\.gz"
    ),
}

CREATE_PARTITION_ENV = {
    "WORKGROUP": "access-logs-workgroup",
    "DATABASE": "access_logs_db",
    "TABLE": "partitioned_gz",
}

TRANSFORM_PARTITION_ENV = {
    "WORKGROUP": "access-logs-workgroup",
    "DATABASE": "access_logs_db",
    "SOURCE_TABLE": "partitioned_gz",
    "TARGET_TABLE": "partitioned_parquet",
    "TARGET_TABLE_LOCATION": "s3://access-logs/transformed",
}

_ALL_KEYS = set(GROUP_BY_DATE_ENV) | set(CREATE_PARTITION_ENV) | set(TRANSFORM_PARTITION_ENV)
_OPTIONAL_KEYS = {
    "LOG_SOURCE",
    "GROUPING_MAX_WORKERS",
    "PIPELINE_CONFIG_FILE",
    "QUERY_MAX_ATTEMPTS",
    "QUERY_POLL_DELAY_MS",
}


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every pipeline key from the environment."""
    for key in _ALL_KEYS | _OPTIONAL_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("AWS_REGION", "eu-central-1")
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    return monkeypatch


@pytest.fixture
def set_env(clean_env):
    """Set a mapping of environment variables for the test."""

    def apply(values: dict) -> None:
        for key, value in values.items():
            clean_env.setenv(key, value)

    return apply


# =============================================================================
# AWS CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def default_clients(monkeypatch, s3_client, athena_client):
    """Install the fake clients as the process-wide default clients."""
    aws_clients.clear_client_cache()
    monkeypatch.setattr(aws_clients, "get_s3_client", lambda: s3_client)
    monkeypatch.setattr(aws_clients, "get_athena_client", lambda: athena_client)
    return s3_client, athena_client


@pytest.fixture
def load_entrypoint():
    """Import an entrypoint module, re-running its cold start if already loaded."""
    loaded = []

    def load(name: str):
        module_name = f"access_logs_pipeline.entrypoints.{name}"
        if module_name in sys.modules:
            module = importlib.reload(sys.modules[module_name])
        else:
            module = importlib.import_module(module_name)
        loaded.append(module_name)
        return module

    yield load

    # never leave a module bound to a test's fake clients
    for module_name in loaded:
        sys.modules.pop(module_name, None)


@pytest.fixture
def group_by_date_env():
    return dict(GROUP_BY_DATE_ENV)


@pytest.fixture
def create_partition_env():
    return dict(CREATE_PARTITION_ENV)


@pytest.fixture
def transform_partition_env():
    return dict(TRANSFORM_PARTITION_ENV)
