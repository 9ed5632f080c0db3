"""
Configuration package for the CRM/ERP lakehouse.

This package contains configuration settings for the Bronze-to-Silver conformance pipeline.
"""

from config.settings import (
    AWS_REGION,
    S3_BUCKET_NAME,
    CRM_TABLES,
    ERP_TABLES,
    S3_PREFIX_STRUCTURE,
    ROLLBACK_ON_FAILURE,
    QUALITY_SAMPLE_SIZE,
    SALES_DATE_MIN,
    SALES_DATE_MAX,
    MIN_PLAUSIBLE_BIRTH_DATE,
    LOG_LEVEL,
    LOG_FORMAT,
    DELTA_TABLE_PROPERTIES,
    SPARK_SQL_CONFIG,
    SCHEMA_VALIDATION,
    get_prefix,
    get_table_names,
    get_all_settings,
)

__all__ = [
    "AWS_REGION",
    "S3_BUCKET_NAME",
    "CRM_TABLES",
    "ERP_TABLES",
    "S3_PREFIX_STRUCTURE",
    "ROLLBACK_ON_FAILURE",
    "QUALITY_SAMPLE_SIZE",
    "SALES_DATE_MIN",
    "SALES_DATE_MAX",
    "MIN_PLAUSIBLE_BIRTH_DATE",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "DELTA_TABLE_PROPERTIES",
    "SPARK_SQL_CONFIG",
    "SCHEMA_VALIDATION",
    "get_prefix",
    "get_table_names",
    "get_all_settings",
]
