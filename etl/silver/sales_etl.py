"""
Silver Sales ETL

This module transforms CRM sales details from the bronze layer to the silver layer.
It performs the following operations:
1. Reads sales data from the bronze Delta table
2. Parses YYYYMMDD integer dates, turning malformed or out-of-range dates into NULL
3. Recomputes sales and price so that sales = quantity * price
4. Reports references to products and customers missing from the silver layer
5. Overwrites the silver Delta table

No sales row is ever dropped: defects are corrected field by field. The stage
runs after the customer and product stages in ``etl.silver.load_silver``.
"""

import logging
from typing import Dict, Tuple

from pyspark.sql import Column, DataFrame, SparkSession
from pyspark.sql.functions import abs as abs_, col, length, lit, to_date, trim, when

from etl.common.etl_utils import (
    add_metadata_columns,
    find_unmatched_keys,
    validate_schema,
)
from etl.common.schemas import BRONZE_SALES_SCHEMA, SILVER_SALES_SCHEMA
from etl.common.spark_session import read_delta_table, write_delta_table
from config import (
    LOG_LEVEL,
    LOG_FORMAT,
    SALES_DATE_MIN,
    SALES_DATE_MAX,
    get_prefix,
)

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL), format=LOG_FORMAT)
logger = logging.getLogger(__name__)

TABLE_NAME = "crm_sales_details"
DATE_COLUMNS = ["sls_order_dt", "sls_ship_dt", "sls_due_dt"]


def read_bronze_sales(spark: SparkSession, bucket_name: str) -> DataFrame:
    """
    Read sales data from bronze layer.

    Args:
        spark: Spark session
        bucket_name: S3 bucket name

    Returns:
        DataFrame: Sales data from bronze layer
    """
    bronze_table_path = get_prefix("bronze", TABLE_NAME)

    logger.info(f"Reading sales data from bronze layer: {bronze_table_path}")

    try:
        df = read_delta_table(
            spark=spark, table_path=bronze_table_path, bucket_name=bucket_name
        )

        logger.info(f"Successfully read {df.count()} sales rows from bronze layer")
        return df
    except Exception as e:
        logger.error(f"Error reading sales data from bronze layer: {str(e)}")
        raise


def parse_sales_date(column: Column) -> Column:
    """
    Parse a YYYYMMDD integer into a date.

    Zero, anything that is not exactly 8 digits, values outside the configured
    range and impossible calendar dates (e.g. 20230231) all become NULL.

    Args:
        column: Integer date column

    Returns:
        Column: DATE expression
    """
    is_structurally_valid = (
        (column != 0)
        & (length(column.cast("string")) == 8)
        & column.between(SALES_DATE_MIN, SALES_DATE_MAX)
    )

    return when(is_structurally_valid, to_date(column.cast("string"), "yyyyMMdd"))


def recompute_measures(df: DataFrame) -> DataFrame:
    """
    Make sales, quantity and price consistent.

    Quantity is trusted as is. A valid (positive) price is kept; otherwise it is
    derived from sales / quantity when that gives at least 1, or taken as
    |price| when sales cannot help. A derived price is never 0 or negative.
    Sales is kept only when it is positive and equals quantity * price, and is
    recomputed otherwise.

    Args:
        df: Sales DataFrame with bronze measures

    Returns:
        DataFrame: DataFrame with corrected sls_sales and sls_price
    """
    sales = col("sls_sales")
    quantity = col("sls_quantity")
    price = col("sls_price")

    derived_price = (
        when(price > 0, price)
        .when(quantity.isNull() | (quantity == 0), lit(None))
        .when((sales > 0) & ((sales / quantity) >= 1), (sales / quantity).cast("int"))
        .when(price < 0, abs_(price))
    )

    priced_df = df.withColumn("effective_price", derived_price)
    effective_price = col("effective_price")

    recomputed_sales = (
        when(
            (sales > 0) & (sales == quantity * effective_price),
            sales,
        )
        .when(effective_price.isNotNull(), quantity * effective_price)
        .when(quantity == 0, lit(0))
    )

    return (
        priced_df.withColumn("sls_sales", recomputed_sales.cast("int"))
        .withColumn("sls_price", effective_price.cast("int"))
        .drop("effective_price")
    )


def transform_sales_data(df: DataFrame) -> DataFrame:
    """
    Transform sales data for the silver layer.

    Args:
        df: Sales data DataFrame from bronze layer

    Returns:
        DataFrame: Transformed sales data
    """
    logger.info("Transforming sales data for silver layer")

    try:
        success, error_msg, validated_df = validate_schema(
            df, BRONZE_SALES_SCHEMA, strict=False
        )

        if not success:
            raise ValueError(f"Schema validation failed for input data: {error_msg}")

        dated_df = validated_df
        for name in DATE_COLUMNS:
            dated_df = dated_df.withColumn(name, parse_sales_date(col(name)))

        result_df = recompute_measures(dated_df).withColumn(
            "sls_ord_num", trim(col("sls_ord_num"))
        )

        result_df = add_metadata_columns(result_df)

        success, error_msg, validated_result_df = validate_schema(
            result_df, SILVER_SALES_SCHEMA, strict=True
        )

        if not success:
            raise ValueError(f"Schema validation failed for output data: {error_msg}")

        logger.info("Successfully transformed sales data for silver layer")
        return validated_result_df
    except Exception as e:
        logger.error(f"Error transforming sales data: {str(e)}")
        raise


def count_unresolved_references(
    sales_df: DataFrame, products_df: DataFrame, customers_df: DataFrame
) -> Dict[str, int]:
    """
    Count sales rows pointing at products or customers absent from silver.

    Args:
        sales_df: Silver sales DataFrame
        products_df: Silver products DataFrame
        customers_df: Silver customers DataFrame

    Returns:
        Dict[str, int]: Unmatched row counts keyed by reference
    """
    unresolved = {
        "sls_prd_key": find_unmatched_keys(
            sales_df, "sls_prd_key", products_df, "prd_key"
        ).count(),
        "sls_cust_id": find_unmatched_keys(
            sales_df, "sls_cust_id", customers_df, "cst_id"
        ).count(),
    }

    for reference, unmatched in unresolved.items():
        if unmatched:
            logger.warning(
                f"{unmatched} sales rows reference an unknown {reference} in the silver layer"
            )

    return unresolved


def read_silver_dimensions(
    spark: SparkSession, bucket_name: str
) -> Tuple[DataFrame, DataFrame]:
    """
    Read the silver products and customers the sales rows refer to.

    Args:
        spark: Spark session
        bucket_name: S3 bucket name

    Returns:
        Tuple[DataFrame, DataFrame]: Silver products and customers
    """
    products_df = read_delta_table(
        spark=spark,
        table_path=get_prefix("silver", "crm_prd_info"),
        bucket_name=bucket_name,
    )
    customers_df = read_delta_table(
        spark=spark,
        table_path=get_prefix("silver", "crm_cust_info"),
        bucket_name=bucket_name,
    )
    return products_df, customers_df


def write_silver_sales(df: DataFrame, bucket_name: str) -> None:
    """
    Write sales data to silver Delta table, replacing its contents.

    Args:
        df: Transformed sales data DataFrame
        bucket_name: S3 bucket name

    Returns:
        None
    """
    table_path = get_prefix("silver", TABLE_NAME)

    logger.info(f"Writing sales data to silver layer: {table_path}")

    try:
        write_delta_table(
            df=df,
            table_path=table_path,
            mode="overwrite",
            z_order_by=["sls_prd_key", "sls_cust_id"],
            bucket_name=bucket_name,
        )

        logger.info(f"Successfully wrote sales data to silver layer: {table_path}")
    except Exception as e:
        logger.error(f"Error writing sales data to silver layer: {str(e)}")
        raise


def load_silver_sales(spark: SparkSession, bucket_name: str) -> int:
    """
    Run the sales stage: read bronze, transform, check references, overwrite silver.

    Args:
        spark: Spark session
        bucket_name: S3 bucket name

    Returns:
        int: Number of rows written
    """
    bronze_df = read_bronze_sales(spark, bucket_name)
    silver_df = transform_sales_data(bronze_df)

    products_df, customers_df = read_silver_dimensions(spark, bucket_name)
    count_unresolved_references(silver_df, products_df, customers_df)

    write_silver_sales(silver_df, bucket_name)
    return silver_df.count()
