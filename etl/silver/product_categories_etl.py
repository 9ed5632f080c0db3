"""
Silver Product Categories ETL

This module copies ERP product categories (erp_px_cat_g1v2) from the bronze
layer to the silver layer. No cleansing rule applies to categories; the stage
only checks the schema and stamps the load metadata.

The stage runs as part of ``etl.silver.load_silver``.
"""

import logging

from pyspark.sql import DataFrame, SparkSession

from etl.common.etl_utils import add_metadata_columns, validate_schema
from etl.common.schemas import (
    BRONZE_PRODUCT_CATEGORIES_SCHEMA,
    SILVER_PRODUCT_CATEGORIES_SCHEMA,
)
from etl.common.spark_session import read_delta_table, write_delta_table
from config import LOG_LEVEL, LOG_FORMAT, get_prefix

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL), format=LOG_FORMAT)
logger = logging.getLogger(__name__)

TABLE_NAME = "erp_px_cat_g1v2"


def read_bronze_product_categories(spark: SparkSession, bucket_name: str) -> DataFrame:
    """
    Read product categories from bronze layer.

    Args:
        spark: Spark session
        bucket_name: S3 bucket name

    Returns:
        DataFrame: Product categories from bronze layer
    """
    bronze_table_path = get_prefix("bronze", TABLE_NAME)

    logger.info(f"Reading product categories from bronze layer: {bronze_table_path}")

    try:
        df = read_delta_table(
            spark=spark, table_path=bronze_table_path, bucket_name=bucket_name
        )

        logger.info(f"Successfully read {df.count()} categories from bronze layer")
        return df
    except Exception as e:
        logger.error(f"Error reading product categories from bronze layer: {str(e)}")
        raise


def transform_product_categories_data(df: DataFrame) -> DataFrame:
    """
    Transform product categories for the silver layer.

    Args:
        df: Product categories DataFrame from bronze layer

    Returns:
        DataFrame: Product categories with load metadata
    """
    success, error_msg, validated_df = validate_schema(
        df, BRONZE_PRODUCT_CATEGORIES_SCHEMA, strict=False
    )

    if not success:
        raise ValueError(f"Schema validation failed for input data: {error_msg}")

    result_df = add_metadata_columns(
        validated_df.select("id", "cat", "subcat", "maintenance")
    )

    success, error_msg, validated_result_df = validate_schema(
        result_df, SILVER_PRODUCT_CATEGORIES_SCHEMA, strict=True
    )

    if not success:
        raise ValueError(f"Schema validation failed for output data: {error_msg}")

    return validated_result_df


def write_silver_product_categories(df: DataFrame, bucket_name: str) -> None:
    """
    Write product categories to silver Delta table, replacing its contents.

    Args:
        df: Product categories DataFrame
        bucket_name: S3 bucket name

    Returns:
        None
    """
    table_path = get_prefix("silver", TABLE_NAME)

    logger.info(f"Writing product categories to silver layer: {table_path}")

    try:
        write_delta_table(
            df=df,
            table_path=table_path,
            mode="overwrite",
            bucket_name=bucket_name,
        )

        logger.info(f"Successfully wrote product categories to silver layer: {table_path}")
    except Exception as e:
        logger.error(f"Error writing product categories to silver layer: {str(e)}")
        raise


def load_silver_product_categories(spark: SparkSession, bucket_name: str) -> int:
    """Run the product categories stage and return the number of rows written."""
    bronze_df = read_bronze_product_categories(spark, bucket_name)
    silver_df = transform_product_categories_data(bronze_df)
    write_silver_product_categories(silver_df, bucket_name)
    return silver_df.count()
