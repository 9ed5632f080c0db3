"""
Silver Customer Demographics ETL

This module transforms ERP customer demographics (erp_cust_az12) from the bronze
layer to the silver layer. It strips the source-system prefix from customer ids,
nulls out birth dates in the future and normalizes gender values.

The stage runs as part of ``etl.silver.load_silver``.
"""

import logging

from pyspark.sql import DataFrame, SparkSession
from pyspark.sql.functions import col, current_date, length, lit, when

from etl.common.code_mappings import ERP_GENDER
from etl.common.etl_utils import add_metadata_columns, validate_schema
from etl.common.schemas import (
    BRONZE_CUSTOMER_DEMOGRAPHICS_SCHEMA,
    SILVER_CUSTOMER_DEMOGRAPHICS_SCHEMA,
)
from etl.common.spark_session import read_delta_table, write_delta_table
from config import LOG_LEVEL, LOG_FORMAT, get_prefix

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL), format=LOG_FORMAT)
logger = logging.getLogger(__name__)

TABLE_NAME = "erp_cust_az12"

# ERP ids such as "NASAW00011000" carry a prefix the CRM keys do not have
SOURCE_ID_PREFIX = "NAS"


def read_bronze_customer_demographics(
    spark: SparkSession, bucket_name: str
) -> DataFrame:
    """
    Read customer demographics from bronze layer.

    Args:
        spark: Spark session
        bucket_name: S3 bucket name

    Returns:
        DataFrame: Customer demographics from bronze layer
    """
    bronze_table_path = get_prefix("bronze", TABLE_NAME)

    logger.info(f"Reading customer demographics from bronze layer: {bronze_table_path}")

    try:
        df = read_delta_table(
            spark=spark, table_path=bronze_table_path, bucket_name=bucket_name
        )

        logger.info(f"Successfully read {df.count()} demographics rows from bronze layer")
        return df
    except Exception as e:
        logger.error(f"Error reading customer demographics from bronze layer: {str(e)}")
        raise


def transform_customer_demographics_data(df: DataFrame) -> DataFrame:
    """
    Transform customer demographics for the silver layer.

    Args:
        df: Customer demographics DataFrame from bronze layer

    Returns:
        DataFrame: Transformed customer demographics
    """
    logger.info("Transforming customer demographics for silver layer")

    try:
        success, error_msg, validated_df = validate_schema(
            df, BRONZE_CUSTOMER_DEMOGRAPHICS_SCHEMA, strict=False
        )

        if not success:
            raise ValueError(f"Schema validation failed for input data: {error_msg}")

        cid = col("cid")

        result_df = validated_df.select(
            when(
                cid.startswith(SOURCE_ID_PREFIX),
                cid.substr(lit(len(SOURCE_ID_PREFIX) + 1), length(cid)),
            )
            .otherwise(cid)
            .alias("cid"),
            when(col("bdate") > current_date(), lit(None))
            .otherwise(col("bdate"))
            .alias("bdate"),
            ERP_GENDER.apply(col("gen")).alias("gen"),
        )

        result_df = add_metadata_columns(result_df)

        success, error_msg, validated_result_df = validate_schema(
            result_df, SILVER_CUSTOMER_DEMOGRAPHICS_SCHEMA, strict=True
        )

        if not success:
            raise ValueError(f"Schema validation failed for output data: {error_msg}")

        logger.info("Successfully transformed customer demographics for silver layer")
        return validated_result_df
    except Exception as e:
        logger.error(f"Error transforming customer demographics: {str(e)}")
        raise


def write_silver_customer_demographics(df: DataFrame, bucket_name: str) -> None:
    """
    Write customer demographics to silver Delta table, replacing its contents.

    Args:
        df: Transformed customer demographics DataFrame
        bucket_name: S3 bucket name

    Returns:
        None
    """
    table_path = get_prefix("silver", TABLE_NAME)

    logger.info(f"Writing customer demographics to silver layer: {table_path}")

    try:
        write_delta_table(
            df=df,
            table_path=table_path,
            mode="overwrite",
            z_order_by="cid",
            bucket_name=bucket_name,
        )

        logger.info(
            f"Successfully wrote customer demographics to silver layer: {table_path}"
        )
    except Exception as e:
        logger.error(f"Error writing customer demographics to silver layer: {str(e)}")
        raise


def load_silver_customer_demographics(spark: SparkSession, bucket_name: str) -> int:
    """
    Run the customer demographics stage: read bronze, transform, overwrite silver.

    Args:
        spark: Spark session
        bucket_name: S3 bucket name

    Returns:
        int: Number of rows written
    """
    bronze_df = read_bronze_customer_demographics(spark, bucket_name)
    silver_df = transform_customer_demographics_data(bronze_df)
    write_silver_customer_demographics(silver_df, bucket_name)
    return silver_df.count()
