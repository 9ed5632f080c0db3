"""
Silver Products ETL

This module transforms CRM product data from the bronze layer to the silver layer.
It performs the following operations:
1. Reads product data from the bronze Delta table
2. Splits the source key into a category id and a product key
3. Cleanses names and costs and maps product line codes
4. Derives validity intervals from each product's version history
5. Overwrites the silver Delta table

The stage runs as part of ``etl.silver.load_silver``.
"""

import logging

from pyspark.sql import DataFrame, SparkSession
from pyspark.sql.functions import (
    col,
    count,
    date_sub,
    lead,
    length,
    lit,
    regexp_replace,
    to_date,
    trim,
    when,
)
from pyspark.sql.window import Window

from etl.common.code_mappings import PRODUCT_LINE
from etl.common.etl_utils import add_metadata_columns, validate_schema
from etl.common.schemas import BRONZE_PRODUCTS_SCHEMA, SILVER_PRODUCTS_SCHEMA
from etl.common.spark_session import read_delta_table, write_delta_table
from config import LOG_LEVEL, LOG_FORMAT, get_prefix

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL), format=LOG_FORMAT)
logger = logging.getLogger(__name__)

TABLE_NAME = "crm_prd_info"

# Source keys look like "CO-RF-FR-R92B-58": category prefix, separator, product key
CATEGORY_PREFIX_LENGTH = 5
PRODUCT_KEY_START = 7


def read_bronze_products(spark: SparkSession, bucket_name: str) -> DataFrame:
    """
    Read product data from bronze layer.

    Args:
        spark: Spark session
        bucket_name: S3 bucket name

    Returns:
        DataFrame: Product data from bronze layer
    """
    bronze_table_path = get_prefix("bronze", TABLE_NAME)

    logger.info(f"Reading product data from bronze layer: {bronze_table_path}")

    try:
        df = read_delta_table(
            spark=spark, table_path=bronze_table_path, bucket_name=bucket_name
        )

        logger.info(f"Successfully read {df.count()} products from bronze layer")
        return df
    except Exception as e:
        logger.error(f"Error reading product data from bronze layer: {str(e)}")
        raise


def split_product_key(df: DataFrame) -> DataFrame:
    """
    Derive cat_id from the key prefix and strip the prefix from prd_key.

    Args:
        df: Products DataFrame with the source prd_key

    Returns:
        DataFrame: DataFrame with cat_id and the cleaned prd_key
    """
    source_key = col("prd_key")

    return df.withColumn(
        "cat_id",
        regexp_replace(source_key.substr(1, CATEGORY_PREFIX_LENGTH), "-", "_"),
    ).withColumn(
        "prd_key",
        source_key.substr(lit(PRODUCT_KEY_START), length(source_key)),
    )


def derive_validity_intervals(df: DataFrame) -> DataFrame:
    """
    Derive prd_end_dt and prd_is_current from each key's version history.

    Distinct start dates per key are ordered; a version ends the day before the
    next later start date. The latest version stays open (NULL end date) and is
    flagged current. Versions sharing a start date share the same interval.

    Args:
        df: Products DataFrame with the source prd_key and a DATE prd_start_dt

    Returns:
        DataFrame: DataFrame with prd_end_dt and prd_is_current
    """
    logger.info("Deriving product validity intervals")

    starts = (
        df.select("prd_key", "prd_start_dt")
        .where(col("prd_key").isNotNull() & col("prd_start_dt").isNotNull())
        .groupBy("prd_key", "prd_start_dt")
        .agg(count(lit(1)).alias("versions"))
    )

    duplicate_keys = (
        starts.where(col("versions") > 1).select("prd_key").distinct().count()
    )
    if duplicate_keys:
        logger.warning(
            f"{duplicate_keys} product keys have several versions starting on the same date"
        )

    window_spec = Window.partitionBy("prd_key").orderBy("prd_start_dt")
    next_starts = starts.withColumn(
        "next_start_dt", lead("prd_start_dt").over(window_spec)
    ).drop("versions")

    return (
        df.join(next_starts, on=["prd_key", "prd_start_dt"], how="left")
        .withColumn("prd_end_dt", date_sub(col("next_start_dt"), 1))
        .withColumn(
            "prd_is_current",
            col("prd_key").isNotNull()
            & col("prd_start_dt").isNotNull()
            & col("next_start_dt").isNull(),
        )
        .drop("next_start_dt")
    )


def transform_products_data(df: DataFrame) -> DataFrame:
    """
    Transform product data for the silver layer.

    Args:
        df: Product data DataFrame from bronze layer

    Returns:
        DataFrame: Transformed product data
    """
    logger.info("Transforming product data for silver layer")

    try:
        success, error_msg, validated_df = validate_schema(
            df, BRONZE_PRODUCTS_SCHEMA, strict=False
        )

        if not success:
            raise ValueError(f"Schema validation failed for input data: {error_msg}")

        dated_df = validated_df.withColumn(
            "prd_start_dt", to_date(col("prd_start_dt"))
        ).drop("prd_end_dt")

        # Intervals are derived per source key, before the category prefix is removed
        interval_df = derive_validity_intervals(dated_df)

        result_df = split_product_key(interval_df).select(
            col("prd_id"),
            col("cat_id"),
            col("prd_key"),
            trim(col("prd_nm")).alias("prd_nm"),
            when(col("prd_cost").isNull() | (col("prd_cost") < 0), lit(0))
            .otherwise(col("prd_cost"))
            .alias("prd_cost"),
            PRODUCT_LINE.apply(col("prd_line")).alias("prd_line"),
            col("prd_start_dt"),
            col("prd_end_dt"),
            col("prd_is_current"),
        )

        result_df = add_metadata_columns(result_df)

        success, error_msg, validated_result_df = validate_schema(
            result_df, SILVER_PRODUCTS_SCHEMA, strict=True
        )

        if not success:
            raise ValueError(f"Schema validation failed for output data: {error_msg}")

        logger.info("Successfully transformed product data for silver layer")
        return validated_result_df
    except Exception as e:
        logger.error(f"Error transforming product data: {str(e)}")
        raise


def write_silver_products(df: DataFrame, bucket_name: str) -> None:
    """
    Write product data to silver Delta table, replacing its contents.

    Args:
        df: Transformed product data DataFrame
        bucket_name: S3 bucket name

    Returns:
        None
    """
    table_path = get_prefix("silver", TABLE_NAME)

    logger.info(f"Writing product data to silver layer: {table_path}")

    try:
        write_delta_table(
            df=df,
            table_path=table_path,
            mode="overwrite",
            z_order_by="prd_key",
            bucket_name=bucket_name,
        )

        logger.info(f"Successfully wrote product data to silver layer: {table_path}")
    except Exception as e:
        logger.error(f"Error writing product data to silver layer: {str(e)}")
        raise


def load_silver_products(spark: SparkSession, bucket_name: str) -> int:
    """
    Run the product stage: read bronze, transform, overwrite silver.

    Args:
        spark: Spark session
        bucket_name: S3 bucket name

    Returns:
        int: Number of rows written
    """
    bronze_df = read_bronze_products(spark, bucket_name)
    silver_df = transform_products_data(bronze_df)
    write_silver_products(silver_df, bucket_name)
    return silver_df.count()
