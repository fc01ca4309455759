"""
CloudFront standard access logs.

CloudFront writes gzip-compressed, tab separated log files named
`{prefix/}{distribution_id}.{year}-{month}-{day}-{hour}.{unique_id}.gz`,
e.g. `unprocessed/E24DN41CDZRLM8.2022-07-20-13.d94543d0.gz`. The slash
after the prefix is added by CloudFront.
"""

from typing import Optional, Sequence

from ..config.constants import FOLDER_UNPROCESSED
from ..schemas.access_logs import CLOUDFRONT_ACCESS_LOG_SCHEMA
from ..utils.sql import is_valid_identifier
from .base import (
    LogSource,
    UnprocessedObjectsFilter,
    anonymize_ip_expression,
    build_log_source,
)
from .registry import LogSourceRegistry

CLOUDFRONT_RAW_KEY_PATTERN = (
    r"[\w/]+\.(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})-(?P<hour>\d{2})\.\w+\.gz"
)


def cookie_whitelist_expression(cookie_names: Sequence[str]) -> str:
    """
    Expression keeping only whitelisted cookies.

    Also decodes double-encoded quotes (`%2522`) in the remaining cookies.

    Raises:
        ValueError: If a cookie name is empty or contains unsupported characters
    """
    invalid = [name for name in cookie_names if not _is_valid_cookie_name(name)]
    if invalid:
        raise ValueError(f"Invalid cookie name(s): {', '.join(map(repr, invalid))}")

    alternatives = "|".join(cookie_names)
    return (
        "replace( array_join( regexp_extract_all( cookie, "
        f"'({alternatives})=[^;]+' ), ';' ), '%2522', '\"' )"
    )


def _is_valid_cookie_name(name: str) -> bool:
    return is_valid_identifier(name.replace("-", "_"))


@LogSourceRegistry.register("cloudfront")
def cloudfront_log_source(
    anonymize_client_ip: bool = True,
    cookie_whitelist: Optional[Sequence[str]] = None,
) -> LogSource:
    """
    Create the CloudFront log source.

    Args:
        anonymize_client_ip: Replace the last part of client IPs with 'xxx'.
            IP addresses are personal data under the GDPR; disabling this
            needs a legal basis and a short retention period.
        cookie_whitelist: Names of cookies to keep; all cookies are kept
            when omitted.

    Returns:
        Configured LogSource
    """
    return build_log_source(
        name="cloudfront",
        raw_key_pattern=CLOUDFRONT_RAW_KEY_PATTERN,
        unprocessed_filter=UnprocessedObjectsFilter(
            prefix=f"{FOLDER_UNPROCESSED}/", suffix=".gz"
        ),
        table_schema=CLOUDFRONT_ACCESS_LOG_SCHEMA,
        column_transformation_rules={
            "request_ip": (
                anonymize_ip_expression("request_ip") if anonymize_client_ip else None
            ),
            "cookie": (
                cookie_whitelist_expression(cookie_whitelist)
                if cookie_whitelist
                else None
            ),
        },
    )
