"""
Lambda entrypoints.

Each module loads its settings at import (cold start) and exposes
`handler(event, context)`:

    access_logs_pipeline.entrypoints.group_by_date.handler
    access_logs_pipeline.entrypoints.create_partition.handler
    access_logs_pipeline.entrypoints.transform_partition.handler
"""
