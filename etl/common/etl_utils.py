"""
ETL utilities for the CRM/ERP lakehouse.

This module provides common utilities for the silver layer stages, including:
- Metadata columns for loaded rows
- Schema validation of stage inputs and outputs
- Key lookups shared by the stages and the quality checks
"""

import logging
from typing import Optional, Tuple

from pyspark.sql import DataFrame
from pyspark.sql.functions import col, current_timestamp
from pyspark.sql.types import StructType

from config import (
    LOG_LEVEL,
    LOG_FORMAT,
    SCHEMA_VALIDATION,
)

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL), format=LOG_FORMAT)
logger = logging.getLogger(__name__)


def add_metadata_columns(df: DataFrame) -> DataFrame:
    """
    Add the load metadata columns to a silver DataFrame.

    Args:
        df: Spark DataFrame

    Returns:
        DataFrame: DataFrame with a dwh_create_date column holding the load timestamp
    """
    return df.withColumn("dwh_create_date", current_timestamp())


def validate_schema(
    df: DataFrame,
    expected_schema: StructType,
    strict: bool = False,
) -> Tuple[bool, Optional[str], DataFrame]:
    """
    Validate the schema of a DataFrame against an expected schema.

    Args:
        df: Spark DataFrame to validate
        expected_schema: Expected schema
        strict: Whether to require exact schema match (True) or allow additional columns (False)

    Returns:
        Tuple[bool, Optional[str], DataFrame]:
            - Success flag
            - Error message (if any)
            - DataFrame with the expected schema (if successful) or original DataFrame (if failed)
    """
    if not SCHEMA_VALIDATION:
        return True, None, df

    actual_fields = {field.name: field for field in df.schema.fields}
    expected_fields = {field.name: field for field in expected_schema.fields}

    missing_fields = [name for name in expected_fields if name not in actual_fields]
    if missing_fields:
        error_msg = f"Missing fields in schema: {', '.join(missing_fields)}"
        logger.error(error_msg)
        return False, error_msg, df

    extra_fields = [name for name in actual_fields if name not in expected_fields]
    if strict and extra_fields:
        error_msg = f"Extra fields in schema: {', '.join(extra_fields)}"
        logger.error(error_msg)
        return False, error_msg, df

    type_mismatches = []
    for name, expected_field in expected_fields.items():
        actual_field = actual_fields[name]
        if str(actual_field.dataType) != str(expected_field.dataType):
            type_mismatches.append(
                f"{name}: expected {expected_field.dataType}, got {actual_field.dataType}"
            )

    if type_mismatches:
        error_msg = f"Schema type mismatches: {', '.join(type_mismatches)}"
        logger.error(error_msg)
        return False, error_msg, df

    if strict:
        # Output tables keep exactly the expected columns, in order
        result_df = df.select(*[col(field.name) for field in expected_schema.fields])
    else:
        result_df = df

    return True, None, result_df


def find_unmatched_keys(
    df: DataFrame,
    key_column: str,
    reference_df: DataFrame,
    reference_column: str,
) -> DataFrame:
    """
    Find rows whose non-null key has no match in a reference table.

    NULL keys reference nothing and are never reported, matching SQL NOT IN semantics.

    Args:
        df: DataFrame holding the referencing key
        key_column: Name of the referencing column
        reference_df: DataFrame holding the referenced key
        reference_column: Name of the referenced column

    Returns:
        DataFrame: Rows of df without a match
    """
    reference_keys = (
        reference_df.select(col(reference_column).alias("_reference_key"))
        .where(col("_reference_key").isNotNull())
        .distinct()
    )

    return df.where(col(key_column).isNotNull()).join(
        reference_keys,
        col(key_column) == col("_reference_key"),
        "left_anti",
    )
