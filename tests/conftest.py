# tests/conftest.py
from datetime import date, datetime

import pytest
from pyspark.sql import SparkSession

from etl.common.schemas import (
    BRONZE_CUSTOMERS_SCHEMA,
    BRONZE_PRODUCTS_SCHEMA,
    BRONZE_SALES_SCHEMA,
    BRONZE_CUSTOMER_DEMOGRAPHICS_SCHEMA,
    BRONZE_CUSTOMER_LOCATIONS_SCHEMA,
    BRONZE_PRODUCT_CATEGORIES_SCHEMA,
)
from config import SPARK_SQL_CONFIG


@pytest.fixture(scope="session")
def spark_session(tmp_path_factory):
    """
    Creates a standard SparkSession configured for local testing,
    without Delta Lake specific configurations.
    """
    warehouse_dir = tmp_path_factory.mktemp("spark_warehouse")

    builder = (
        SparkSession.builder
        .appName("pytest-local-spark-unit-tests")
        .master("local[1]")
        .config("spark.sql.shuffle.partitions", "2")  # Keep low for local testing
        .config("spark.sql.warehouse.dir", str(warehouse_dir))
        .config("spark.driver.memory", "1g")
        .config("spark.ui.showConsoleProgress", "false")
        .config("spark.log.level", "WARN")
    )
    # Same SQL semantics as the pipeline session
    for key, value in SPARK_SQL_CONFIG.items():
        builder = builder.config(key, value)

    spark = builder.getOrCreate()
    yield spark

    spark.stop()


@pytest.fixture(scope="session")
def bronze_tables(spark_session):
    """A small, deliberately dirty bronze layer covering every source entity."""
    customers = spark_session.createDataFrame(
        [
            (7, "AW00000007", " Ann ", "Smith", "M", "F", date(2023, 1, 1)),
            (7, "AW00000007", "Ann", "Smith ", " m ", "f", date(2023, 2, 1)),
            (8, "AW00000008", "Bob", "Jones", "S", "M", date(2023, 1, 5)),
            (9, "AW00000009", "Cleo", "Ray", None, "X", date(2023, 3, 1)),
            (None, "AW00000010", "Nobody", "Null", "S", "M", date(2023, 1, 1)),
        ],
        BRONZE_CUSTOMERS_SCHEMA,
    )

    products = spark_session.createDataFrame(
        [
            (1, "CO-RF-FR-R92B-58", " Frame ", None, "R ", datetime(2011, 7, 1), None),
            (2, "CO-RF-FR-R92B-58", "Frame", 12, "r", datetime(2012, 7, 1), None),
            (3, "CO-RF-FR-R92B-58", "Frame", 14, "R", datetime(2013, 7, 1), None),
            (4, "AC-HE-HL-U509", "Helmet", -5, "S", datetime(2013, 7, 1), datetime(2012, 1, 1)),
            (5, "BI-MB-BK-M68B-38", "Bike", 100, None, datetime(2013, 7, 1), None),
        ],
        BRONZE_PRODUCTS_SCHEMA,
    )

    sales = spark_session.createDataFrame(
        [
            ("SO1 ", "FR-R92B-58", 7, 20130101, 20130108, 20130113, None, 3, 10),
            ("SO2", "HL-U509", 8, 0, 20130108, 20130113, 100, 0, None),
            ("SO3", "BK-M68B-38", 9, 2013011, 20130108, 20130113, 40, 2, -20),
            ("SO4", "ZZ-UNKNOWN", 99, 20130110, 20130108, 20130113, 20, 1, 20),
        ],
        BRONZE_SALES_SCHEMA,
    )

    demographics = spark_session.createDataFrame(
        [
            ("NASAW00000007", date(1980, 5, 1), "Female"),
            ("AW00000008", date(2999, 1, 1), " M "),
            ("AW00000009", date(1910, 1, 1), None),
        ],
        BRONZE_CUSTOMER_DEMOGRAPHICS_SCHEMA,
    )

    locations = spark_session.createDataFrame(
        [
            ("AW-00000007", "DE"),
            ("AW-00000008", " USA"),
            ("AW-00000009", ""),
            ("AW-00000011", "Australia "),
        ],
        BRONZE_CUSTOMER_LOCATIONS_SCHEMA,
    )

    categories = spark_session.createDataFrame(
        [
            ("CO_RF", "Components", "Road Frames", "Yes"),
            ("AC_HE", "Accessories", "Helmets", "Yes"),
            ("XX_YY", "Unused", "Unused ", "No"),
        ],
        BRONZE_PRODUCT_CATEGORIES_SCHEMA,
    )

    return {
        "crm_cust_info": customers,
        "crm_prd_info": products,
        "crm_sales_details": sales,
        "erp_cust_az12": demographics,
        "erp_loc_a101": locations,
        "erp_px_cat_g1v2": categories,
    }
