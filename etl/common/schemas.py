"""
Schema definitions for the CRM/ERP lakehouse.

This module contains schema definitions for the six source entities in:
- Bronze layer Delta tables (raw, as ingested)
- Silver layer Delta tables (cleaned and conformed)

Each schema is defined using PySpark's StructType and StructField classes.
"""

from pyspark.sql.types import (
    StructType,
    StructField,
    StringType,
    IntegerType,
    TimestampType,
    DateType,
    BooleanType,
)

# Bronze Layer Schemas

BRONZE_CUSTOMERS_SCHEMA = StructType(
    [
        StructField("cst_id", IntegerType(), True),
        StructField("cst_key", StringType(), True),
        StructField("cst_firstname", StringType(), True),
        StructField("cst_lastname", StringType(), True),
        StructField("cst_marital_status", StringType(), True),
        StructField("cst_gndr", StringType(), True),
        StructField("cst_create_date", DateType(), True),
    ]
)

BRONZE_PRODUCTS_SCHEMA = StructType(
    [
        StructField("prd_id", IntegerType(), True),
        StructField("prd_key", StringType(), True),
        StructField("prd_nm", StringType(), True),
        StructField("prd_cost", IntegerType(), True),
        StructField("prd_line", StringType(), True),
        StructField("prd_start_dt", TimestampType(), True),
        StructField("prd_end_dt", TimestampType(), True),
    ]
)

# Sales dates arrive as YYYYMMDD integers
BRONZE_SALES_SCHEMA = StructType(
    [
        StructField("sls_ord_num", StringType(), True),
        StructField("sls_prd_key", StringType(), True),
        StructField("sls_cust_id", IntegerType(), True),
        StructField("sls_order_dt", IntegerType(), True),
        StructField("sls_ship_dt", IntegerType(), True),
        StructField("sls_due_dt", IntegerType(), True),
        StructField("sls_sales", IntegerType(), True),
        StructField("sls_quantity", IntegerType(), True),
        StructField("sls_price", IntegerType(), True),
    ]
)

BRONZE_CUSTOMER_DEMOGRAPHICS_SCHEMA = StructType(
    [
        StructField("cid", StringType(), True),
        StructField("bdate", DateType(), True),
        StructField("gen", StringType(), True),
    ]
)

BRONZE_CUSTOMER_LOCATIONS_SCHEMA = StructType(
    [
        StructField("cid", StringType(), True),
        StructField("cntry", StringType(), True),
    ]
)

BRONZE_PRODUCT_CATEGORIES_SCHEMA = StructType(
    [
        StructField("id", StringType(), True),
        StructField("cat", StringType(), True),
        StructField("subcat", StringType(), True),
        StructField("maintenance", StringType(), True),
    ]
)

# Silver Layer Schemas

SILVER_CUSTOMERS_SCHEMA = StructType(
    [
        StructField("cst_id", IntegerType(), False),
        StructField("cst_key", StringType(), True),
        StructField("cst_firstname", StringType(), True),
        StructField("cst_lastname", StringType(), True),
        StructField("cst_marital_status", StringType(), False),
        StructField("cst_gndr", StringType(), False),
        StructField("cst_create_date", DateType(), True),
        # Metadata columns
        StructField("dwh_create_date", TimestampType(), False),
    ]
)

SILVER_PRODUCTS_SCHEMA = StructType(
    [
        StructField("prd_id", IntegerType(), True),
        StructField("cat_id", StringType(), True),
        StructField("prd_key", StringType(), True),
        StructField("prd_nm", StringType(), True),
        StructField("prd_cost", IntegerType(), False),
        StructField("prd_line", StringType(), False),
        StructField("prd_start_dt", DateType(), True),
        StructField("prd_end_dt", DateType(), True),
        StructField("prd_is_current", BooleanType(), False),
        # Metadata columns
        StructField("dwh_create_date", TimestampType(), False),
    ]
)

SILVER_SALES_SCHEMA = StructType(
    [
        StructField("sls_ord_num", StringType(), True),
        StructField("sls_prd_key", StringType(), True),
        StructField("sls_cust_id", IntegerType(), True),
        StructField("sls_order_dt", DateType(), True),
        StructField("sls_ship_dt", DateType(), True),
        StructField("sls_due_dt", DateType(), True),
        StructField("sls_sales", IntegerType(), True),
        StructField("sls_quantity", IntegerType(), True),
        StructField("sls_price", IntegerType(), True),
        # Metadata columns
        StructField("dwh_create_date", TimestampType(), False),
    ]
)

SILVER_CUSTOMER_DEMOGRAPHICS_SCHEMA = StructType(
    [
        StructField("cid", StringType(), True),
        StructField("bdate", DateType(), True),
        StructField("gen", StringType(), False),
        # Metadata columns
        StructField("dwh_create_date", TimestampType(), False),
    ]
)

SILVER_CUSTOMER_LOCATIONS_SCHEMA = StructType(
    [
        StructField("cid", StringType(), True),
        StructField("cntry", StringType(), False),
        # Metadata columns
        StructField("dwh_create_date", TimestampType(), False),
    ]
)

SILVER_PRODUCT_CATEGORIES_SCHEMA = StructType(
    [
        StructField("id", StringType(), True),
        StructField("cat", StringType(), True),
        StructField("subcat", StringType(), True),
        StructField("maintenance", StringType(), True),
        # Metadata columns
        StructField("dwh_create_date", TimestampType(), False),
    ]
)
