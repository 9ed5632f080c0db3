"""
Silver Customer Locations ETL

This module transforms ERP customer locations (erp_loc_a101) from the bronze
layer to the silver layer. Customer ids lose their "-" separators so they match
the CRM customer keys, and country codes are folded to full country names.

The stage runs as part of ``etl.silver.load_silver``.
"""

import logging

from pyspark.sql import DataFrame, SparkSession
from pyspark.sql.functions import col, regexp_replace

from etl.common.code_mappings import COUNTRY
from etl.common.etl_utils import add_metadata_columns, validate_schema
from etl.common.schemas import (
    BRONZE_CUSTOMER_LOCATIONS_SCHEMA,
    SILVER_CUSTOMER_LOCATIONS_SCHEMA,
)
from etl.common.spark_session import read_delta_table, write_delta_table
from config import LOG_LEVEL, LOG_FORMAT, get_prefix

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL), format=LOG_FORMAT)
logger = logging.getLogger(__name__)

TABLE_NAME = "erp_loc_a101"


def read_bronze_customer_locations(spark: SparkSession, bucket_name: str) -> DataFrame:
    """
    Read customer locations from bronze layer.

    Args:
        spark: Spark session
        bucket_name: S3 bucket name

    Returns:
        DataFrame: Customer locations from bronze layer
    """
    bronze_table_path = get_prefix("bronze", TABLE_NAME)

    logger.info(f"Reading customer locations from bronze layer: {bronze_table_path}")

    try:
        df = read_delta_table(
            spark=spark, table_path=bronze_table_path, bucket_name=bucket_name
        )

        logger.info(f"Successfully read {df.count()} locations from bronze layer")
        return df
    except Exception as e:
        logger.error(f"Error reading customer locations from bronze layer: {str(e)}")
        raise


def transform_customer_locations_data(df: DataFrame) -> DataFrame:
    """
    Transform customer locations for the silver layer.

    Args:
        df: Customer locations DataFrame from bronze layer

    Returns:
        DataFrame: Transformed customer locations
    """
    logger.info("Transforming customer locations for silver layer")

    try:
        success, error_msg, validated_df = validate_schema(
            df, BRONZE_CUSTOMER_LOCATIONS_SCHEMA, strict=False
        )

        if not success:
            raise ValueError(f"Schema validation failed for input data: {error_msg}")

        result_df = validated_df.select(
            regexp_replace(col("cid"), "-", "").alias("cid"),
            COUNTRY.apply(col("cntry")).alias("cntry"),
        )

        result_df = add_metadata_columns(result_df)

        success, error_msg, validated_result_df = validate_schema(
            result_df, SILVER_CUSTOMER_LOCATIONS_SCHEMA, strict=True
        )

        if not success:
            raise ValueError(f"Schema validation failed for output data: {error_msg}")

        logger.info("Successfully transformed customer locations for silver layer")
        return validated_result_df
    except Exception as e:
        logger.error(f"Error transforming customer locations: {str(e)}")
        raise


def write_silver_customer_locations(df: DataFrame, bucket_name: str) -> None:
    """
    Write customer locations to silver Delta table, replacing its contents.

    Args:
        df: Transformed customer locations DataFrame
        bucket_name: S3 bucket name

    Returns:
        None
    """
    table_path = get_prefix("silver", TABLE_NAME)

    logger.info(f"Writing customer locations to silver layer: {table_path}")

    try:
        write_delta_table(
            df=df,
            table_path=table_path,
            mode="overwrite",
            bucket_name=bucket_name,
        )

        logger.info(f"Successfully wrote customer locations to silver layer: {table_path}")
    except Exception as e:
        logger.error(f"Error writing customer locations to silver layer: {str(e)}")
        raise


def load_silver_customer_locations(spark: SparkSession, bucket_name: str) -> int:
    """Run the customer locations stage and return the number of rows written."""
    bronze_df = read_bronze_customer_locations(spark, bucket_name)
    silver_df = transform_customer_locations_data(bronze_df)
    write_silver_customer_locations(silver_df, bucket_name)
    return silver_df.count()
