"""
Tests for the Silver ERP ETL stages.

This module contains tests for the customer demographics, customer locations
and product categories stages.
"""

import sys
from datetime import date
from pathlib import Path
from unittest.mock import patch, MagicMock

# Add the project root to the Python path
sys.path.append(str(Path(__file__).resolve().parents[1]))

from etl.silver.customer_demographics_etl import (
    transform_customer_demographics_data,
    write_silver_customer_demographics,
)
from etl.silver.customer_locations_etl import (
    transform_customer_locations_data,
    write_silver_customer_locations,
)
from etl.silver.product_categories_etl import (
    transform_product_categories_data,
    load_silver_product_categories,
)
from etl.common.code_mappings import ERP_GENDER
from etl.common.schemas import (
    SILVER_CUSTOMER_DEMOGRAPHICS_SCHEMA,
    SILVER_CUSTOMER_LOCATIONS_SCHEMA,
    SILVER_PRODUCT_CATEGORIES_SCHEMA,
)


def test_demographics_prefix_is_stripped(spark_session, bronze_tables):
    result = transform_customer_demographics_data(bronze_tables["erp_cust_az12"])

    ids = sorted(row["cid"] for row in result.collect())
    assert ids == ["AW00000007", "AW00000008", "AW00000009"]


def test_demographics_future_birth_date_is_nulled(spark_session, bronze_tables):
    rows = {
        row["cid"]: row
        for row in transform_customer_demographics_data(
            bronze_tables["erp_cust_az12"]
        ).collect()
    }

    assert rows["AW00000007"]["bdate"] == date(1980, 5, 1)
    assert rows["AW00000008"]["bdate"] is None
    # Implausibly old dates are only profiled, not corrected
    assert rows["AW00000009"]["bdate"] == date(1910, 1, 1)


def test_demographics_gender_mapping(spark_session, bronze_tables):
    result = transform_customer_demographics_data(bronze_tables["erp_cust_az12"])
    rows = {row["cid"]: row["gen"] for row in result.collect()}

    assert rows == {
        "AW00000007": "Female",
        "AW00000008": "Male",
        "AW00000009": "n/a",
    }
    assert set(rows.values()) <= ERP_GENDER.vocabulary
    assert result.columns == [
        field.name for field in SILVER_CUSTOMER_DEMOGRAPHICS_SCHEMA.fields
    ]


def test_locations_ids_and_countries(spark_session, bronze_tables):
    result = transform_customer_locations_data(bronze_tables["erp_loc_a101"])
    rows = {row["cid"]: row["cntry"] for row in result.collect()}

    assert rows == {
        "AW00000007": "Germany",
        "AW00000008": "United States",
        "AW00000009": "n/a",
        "AW00000011": "Australia",
    }
    assert result.columns == [
        field.name for field in SILVER_CUSTOMER_LOCATIONS_SCHEMA.fields
    ]


def test_locations_null_country(spark_session):
    df = spark_session.createDataFrame(
        [("AW-1", None)], "cid string, cntry string"
    )

    row = transform_customer_locations_data(df).collect()[0]

    assert row["cntry"] == "n/a"


def test_categories_pass_through(spark_session, bronze_tables):
    bronze = bronze_tables["erp_px_cat_g1v2"]
    result = transform_product_categories_data(bronze)

    assert result.columns == [
        field.name for field in SILVER_PRODUCT_CATEGORIES_SCHEMA.fields
    ]
    assert sorted(result.drop("dwh_create_date").collect()) == sorted(bronze.collect())


@patch("etl.silver.customer_demographics_etl.write_delta_table")
def test_write_silver_customer_demographics(mock_write_delta_table):
    write_silver_customer_demographics(MagicMock(), "test-bucket")

    args, kwargs = mock_write_delta_table.call_args
    assert kwargs["table_path"] == "silver/erp_cust_az12/"
    assert kwargs["mode"] == "overwrite"


@patch("etl.silver.customer_locations_etl.write_delta_table")
def test_write_silver_customer_locations(mock_write_delta_table):
    write_silver_customer_locations(MagicMock(), "test-bucket")

    args, kwargs = mock_write_delta_table.call_args
    assert kwargs["table_path"] == "silver/erp_loc_a101/"
    assert kwargs["mode"] == "overwrite"


@patch("etl.silver.product_categories_etl.write_delta_table")
@patch("etl.silver.product_categories_etl.read_delta_table")
def test_load_silver_product_categories(
    mock_read_delta_table, mock_write_delta_table, spark_session, bronze_tables
):
    mock_read_delta_table.return_value = bronze_tables["erp_px_cat_g1v2"]

    row_count = load_silver_product_categories(spark_session, "test-bucket")

    assert row_count == 3
    read_kwargs = mock_read_delta_table.call_args[1]
    assert read_kwargs["table_path"] == "bronze/erp_px_cat_g1v2/"
    write_kwargs = mock_write_delta_table.call_args[1]
    assert write_kwargs["table_path"] == "silver/erp_px_cat_g1v2/"
    assert write_kwargs["bucket_name"] == "test-bucket"
