"""
Common utilities for ETL processes.

This package contains common utilities used across the ETL processes,
including Spark session and Delta table management, table schemas, code
mappings, stage observability and S3 operations.
"""
