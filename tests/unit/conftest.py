"""
Pytest configuration and shared fixtures for unit tests.
"""

import pytest


@pytest.fixture
def registered_sources():
    """
    Fixture to ensure the shipped log sources are registered.

    Since LogSourceRegistry.clear() may have been called, the factories
    are registered again explicitly.
    """
    from access_logs_pipeline.sources import (
        LogSourceRegistry,
        cloudfront_log_source,
        s3_server_log_source,
    )

    if not LogSourceRegistry.is_registered("cloudfront"):
        LogSourceRegistry.register_factory("cloudfront", cloudfront_log_source)
    if not LogSourceRegistry.is_registered("s3"):
        LogSourceRegistry.register_factory("s3", s3_server_log_source)
