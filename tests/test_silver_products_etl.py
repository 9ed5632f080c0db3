"""
Tests for Silver Products ETL.

This module contains tests for the Silver Products ETL process.
"""

import sys
from datetime import date, datetime
from pathlib import Path
from unittest.mock import patch, MagicMock

# Add the project root to the Python path
sys.path.append(str(Path(__file__).resolve().parents[1]))

from etl.silver.products_etl import (
    split_product_key,
    transform_products_data,
    write_silver_products,
)
from etl.common.code_mappings import PRODUCT_LINE
from etl.common.schemas import BRONZE_PRODUCTS_SCHEMA, SILVER_PRODUCTS_SCHEMA


def _by_id(df):
    return {row["prd_id"]: row for row in df.collect()}


def test_split_product_key(spark_session):
    df = spark_session.createDataFrame([("CO-RF-FR-R92B-58",)], ["prd_key"])

    row = split_product_key(df).collect()[0]

    assert row["cat_id"] == "CO_RF"
    assert row["prd_key"] == "FR-R92B-58"


def test_cleansing_rules(spark_session, bronze_tables):
    rows = _by_id(transform_products_data(bronze_tables["crm_prd_info"]))

    assert rows[1]["prd_nm"] == "Frame"
    assert rows[1]["prd_cost"] == 0
    assert rows[1]["prd_line"] == "Road"
    assert rows[2]["prd_cost"] == 12
    assert rows[4]["cat_id"] == "AC_HE"
    assert rows[4]["prd_key"] == "HL-U509"
    assert rows[4]["prd_cost"] == 0
    assert rows[4]["prd_line"] == "Sales"
    assert rows[5]["prd_line"] == "n/a"


def test_product_lines_in_vocabulary(spark_session, bronze_tables):
    result = transform_products_data(bronze_tables["crm_prd_info"])

    lines = {row["prd_line"] for row in result.select("prd_line").distinct().collect()}
    assert lines <= PRODUCT_LINE.vocabulary


def test_validity_intervals_chain(spark_session, bronze_tables):
    """Each version ends the day before the next one starts; the last stays open."""
    rows = _by_id(transform_products_data(bronze_tables["crm_prd_info"]))

    assert rows[1]["prd_start_dt"] == date(2011, 7, 1)
    assert rows[1]["prd_end_dt"] == date(2012, 6, 30)
    assert rows[2]["prd_end_dt"] == date(2013, 6, 30)
    assert rows[3]["prd_end_dt"] is None
    assert [rows[i]["prd_is_current"] for i in (1, 2, 3)] == [False, False, True]


def test_source_end_date_is_ignored(spark_session, bronze_tables):
    """A bronze end date before the start is replaced by the derived interval."""
    rows = _by_id(transform_products_data(bronze_tables["crm_prd_info"]))

    assert rows[4]["prd_end_dt"] is None
    assert rows[4]["prd_is_current"] is True


def test_intervals_never_overlap(spark_session, bronze_tables):
    result = transform_products_data(bronze_tables["crm_prd_info"])

    versions = sorted(
        (row["prd_key"], row["prd_start_dt"], row["prd_end_dt"])
        for row in result.collect()
        if row["prd_key"] == "FR-R92B-58"
    )
    for (_, _, end), (_, next_start, _) in zip(versions, versions[1:]):
        assert end < next_start


def test_duplicate_start_dates_share_interval(spark_session):
    df = spark_session.createDataFrame(
        [
            (1, "CO-RF-FR-R92B-58", "Frame", 10, "R", datetime(2011, 7, 1), None),
            (2, "CO-RF-FR-R92B-58", "Frame", 11, "R", datetime(2011, 7, 1, 12, 0), None),
            (3, "CO-RF-FR-R92B-58", "Frame", 12, "R", datetime(2012, 7, 1), None),
        ],
        BRONZE_PRODUCTS_SCHEMA,
    )

    rows = _by_id(transform_products_data(df))

    assert rows[1]["prd_end_dt"] == date(2012, 6, 30)
    assert rows[2]["prd_end_dt"] == date(2012, 6, 30)
    assert rows[3]["prd_is_current"] is True


def test_null_start_date_is_not_current(spark_session):
    df = spark_session.createDataFrame(
        [(1, "CO-RF-FR-R92B-58", "Frame", 10, "R", None, None)],
        BRONZE_PRODUCTS_SCHEMA,
    )

    row = transform_products_data(df).collect()[0]

    assert row["prd_start_dt"] is None
    assert row["prd_end_dt"] is None
    assert row["prd_is_current"] is False


def test_null_product_key_is_not_current(spark_session):
    df = spark_session.createDataFrame(
        [(1, None, "Frame", 10, "R", datetime(2011, 7, 1), None)],
        BRONZE_PRODUCTS_SCHEMA,
    )

    row = transform_products_data(df).collect()[0]

    assert row["prd_key"] is None
    assert row["prd_start_dt"] == date(2011, 7, 1)
    assert row["prd_is_current"] is False


def test_duplicate_start_warning_counts_keys(spark_session, caplog):
    """Two shared start dates on one key are reported as one key."""
    df = spark_session.createDataFrame(
        [
            (1, "CO-RF-FR-R92B-58", "Frame", 10, "R", datetime(2011, 7, 1), None),
            (2, "CO-RF-FR-R92B-58", "Frame", 11, "R", datetime(2011, 7, 1), None),
            (3, "CO-RF-FR-R92B-58", "Frame", 12, "R", datetime(2012, 7, 1), None),
            (4, "CO-RF-FR-R92B-58", "Frame", 13, "R", datetime(2012, 7, 1), None),
        ],
        BRONZE_PRODUCTS_SCHEMA,
    )

    with caplog.at_level("WARNING"):
        transform_products_data(df)

    assert "1 product keys have several versions starting on the same date" in caplog.text


def test_output_schema(spark_session, bronze_tables):
    result = transform_products_data(bronze_tables["crm_prd_info"])

    assert result.columns == [field.name for field in SILVER_PRODUCTS_SCHEMA.fields]
    assert result.count() == bronze_tables["crm_prd_info"].count()


@patch("etl.silver.products_etl.write_delta_table")
def test_write_silver_products(mock_write_delta_table):
    df = MagicMock()

    write_silver_products(df, "test-bucket")

    args, kwargs = mock_write_delta_table.call_args
    assert kwargs["table_path"] == "silver/crm_prd_info/"
    assert kwargs["mode"] == "overwrite"
    assert kwargs["z_order_by"] == "prd_key"
    assert kwargs["bucket_name"] == "test-bucket"
