"""
Factories for the boto3 clients used by the pipeline.

Clients are created once per process and shared; boto3 low-level clients
are safe to use from several threads.
"""

import os
from functools import lru_cache

import boto3
from botocore.config import Config

_CLIENT_CONFIG = Config(retries={"mode": "standard"})


@lru_cache
def get_s3_client():
    """Get the shared S3 client."""
    return boto3.client(
        "s3", region_name=os.environ.get("AWS_REGION"), config=_CLIENT_CONFIG
    )


@lru_cache
def get_athena_client():
    """Get the shared Athena client."""
    return boto3.client(
        "athena", region_name=os.environ.get("AWS_REGION"), config=_CLIENT_CONFIG
    )


def clear_client_cache() -> None:
    """Drop the cached clients (useful for testing)."""
    get_s3_client.cache_clear()
    get_athena_client.cache_clear()
