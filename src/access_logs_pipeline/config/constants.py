"""
Constants for access log folders, partitioning and query polling.
"""

from datetime import timedelta

# =============================================================================
# Bucket Layout
# =============================================================================

# Folder receiving raw log objects (without leading/trailing slashes)
FOLDER_UNPROCESSED = "unprocessed"

# =============================================================================
# Partitioning
# =============================================================================

# Partition keys of both access log tables, in schema order
PARTITION_KEYS = ("year", "month", "day", "hour")

# The registrar runs at minute 55 and prepares the partition of the upcoming hour
PARTITION_CREATION_LEAD = timedelta(hours=1)

# The transformer runs at minute 1 and processes the hour that closed two
# hours ago, so late uploads of that hour have arrived before it is read
PARTITION_TRANSFORMATION_LAG = timedelta(hours=2)

# =============================================================================
# Query Execution
# =============================================================================

# 50 polls x 200ms = at most 10s of waiting per statement
DEFAULT_QUERY_MAX_ATTEMPTS = 50
DEFAULT_QUERY_POLL_DELAY_SECONDS = 0.2

# =============================================================================
# Grouping
# =============================================================================

DEFAULT_GROUPING_MAX_WORKERS = 16
