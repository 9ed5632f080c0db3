"""
Silver Customers ETL

This module transforms CRM customer data from the bronze layer to the silver layer.
It performs the following operations:
1. Reads customer data from the bronze Delta table
2. Drops rows without a customer id and keeps the latest record per customer
3. Trims names and normalizes marital status and gender codes
4. Overwrites the silver Delta table

The stage runs as part of ``etl.silver.load_silver``.
"""

import logging

from pyspark.sql import DataFrame, SparkSession
from pyspark.sql.functions import col, row_number, trim
from pyspark.sql.window import Window

from etl.common.code_mappings import CRM_GENDER, MARITAL_STATUS
from etl.common.etl_utils import add_metadata_columns, validate_schema
from etl.common.schemas import BRONZE_CUSTOMERS_SCHEMA, SILVER_CUSTOMERS_SCHEMA
from etl.common.spark_session import read_delta_table, write_delta_table
from config import LOG_LEVEL, LOG_FORMAT, get_prefix

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL), format=LOG_FORMAT)
logger = logging.getLogger(__name__)

TABLE_NAME = "crm_cust_info"

# Ties on create date are broken on row content so the survivor never depends on file order
TIE_BREAK_COLUMNS = [
    "cst_key",
    "cst_lastname",
    "cst_firstname",
    "cst_marital_status",
    "cst_gndr",
]


def read_bronze_customers(spark: SparkSession, bucket_name: str) -> DataFrame:
    """
    Read customer data from bronze layer.

    Args:
        spark: Spark session
        bucket_name: S3 bucket name

    Returns:
        DataFrame: Customer data from bronze layer
    """
    bronze_table_path = get_prefix("bronze", TABLE_NAME)

    logger.info(f"Reading customer data from bronze layer: {bronze_table_path}")

    try:
        df = read_delta_table(
            spark=spark, table_path=bronze_table_path, bucket_name=bucket_name
        )

        logger.info(f"Successfully read {df.count()} customers from bronze layer")
        return df
    except Exception as e:
        logger.error(f"Error reading customer data from bronze layer: {str(e)}")
        raise


def select_latest_customers(df: DataFrame) -> DataFrame:
    """
    Keep one row per customer id: the most recently created one.

    Rows without a customer id carry no usable key and are dropped.

    Args:
        df: Customer DataFrame

    Returns:
        DataFrame: Deduplicated customer DataFrame
    """
    logger.info("Selecting latest record per customer")

    window_spec = Window.partitionBy("cst_id").orderBy(
        col("cst_create_date").desc_nulls_last(),
        *[col(name).asc_nulls_last() for name in TIE_BREAK_COLUMNS],
    )

    return (
        df.where(col("cst_id").isNotNull())
        .withColumn("flag_last", row_number().over(window_spec))
        .where(col("flag_last") == 1)
        .drop("flag_last")
    )


def transform_customers_data(df: DataFrame) -> DataFrame:
    """
    Transform customer data for the silver layer.

    Args:
        df: Customer data DataFrame from bronze layer

    Returns:
        DataFrame: Transformed customer data
    """
    logger.info("Transforming customer data for silver layer")

    try:
        success, error_msg, validated_df = validate_schema(
            df, BRONZE_CUSTOMERS_SCHEMA, strict=False
        )

        if not success:
            raise ValueError(f"Schema validation failed for input data: {error_msg}")

        latest_df = select_latest_customers(validated_df)

        result_df = latest_df.select(
            col("cst_id"),
            col("cst_key"),
            trim(col("cst_firstname")).alias("cst_firstname"),
            trim(col("cst_lastname")).alias("cst_lastname"),
            MARITAL_STATUS.apply(col("cst_marital_status")).alias("cst_marital_status"),
            CRM_GENDER.apply(col("cst_gndr")).alias("cst_gndr"),
            col("cst_create_date"),
        )

        result_df = add_metadata_columns(result_df)

        success, error_msg, validated_result_df = validate_schema(
            result_df, SILVER_CUSTOMERS_SCHEMA, strict=True
        )

        if not success:
            raise ValueError(f"Schema validation failed for output data: {error_msg}")

        logger.info("Successfully transformed customer data for silver layer")
        return validated_result_df
    except Exception as e:
        logger.error(f"Error transforming customer data: {str(e)}")
        raise


def write_silver_customers(df: DataFrame, bucket_name: str) -> None:
    """
    Write customer data to silver Delta table, replacing its contents.

    Args:
        df: Transformed customer data DataFrame
        bucket_name: S3 bucket name

    Returns:
        None
    """
    table_path = get_prefix("silver", TABLE_NAME)

    logger.info(f"Writing customer data to silver layer: {table_path}")

    try:
        write_delta_table(
            df=df,
            table_path=table_path,
            mode="overwrite",
            z_order_by="cst_id",
            bucket_name=bucket_name,
        )

        logger.info(f"Successfully wrote customer data to silver layer: {table_path}")
    except Exception as e:
        logger.error(f"Error writing customer data to silver layer: {str(e)}")
        raise


def load_silver_customers(spark: SparkSession, bucket_name: str) -> int:
    """
    Run the customer stage: read bronze, transform, overwrite silver.

    Args:
        spark: Spark session
        bucket_name: S3 bucket name

    Returns:
        int: Number of rows written
    """
    bronze_df = read_bronze_customers(spark, bucket_name)
    silver_df = transform_customers_data(bronze_df)
    write_silver_customers(silver_df, bucket_name)
    return silver_df.count()
