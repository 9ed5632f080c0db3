"""
Tests for the shared ETL helpers and stage listeners.
"""

import sys
from pathlib import Path

# Add the project root to the Python path
sys.path.append(str(Path(__file__).resolve().parents[1]))

from etl.common.etl_utils import (
    add_metadata_columns,
    find_unmatched_keys,
    validate_schema,
)
from etl.common.observability import LoggingStageListener
from etl.common.schemas import BRONZE_CUSTOMER_LOCATIONS_SCHEMA


def test_validate_schema_strict_reorders_and_rejects_extras(spark_session):
    df = spark_session.createDataFrame([("DE", "AW1")], "cntry string, cid string")

    success, error_msg, result_df = validate_schema(
        df, BRONZE_CUSTOMER_LOCATIONS_SCHEMA, strict=True
    )
    assert success and error_msg is None
    assert result_df.columns == ["cid", "cntry"]

    extra_df = df.withColumn("extra", df.cid)
    success, error_msg, _ = validate_schema(
        extra_df, BRONZE_CUSTOMER_LOCATIONS_SCHEMA, strict=True
    )
    assert not success
    assert "extra" in error_msg

    success, _, lenient_df = validate_schema(extra_df, BRONZE_CUSTOMER_LOCATIONS_SCHEMA)
    assert success
    assert "extra" in lenient_df.columns


def test_validate_schema_type_mismatch(spark_session):
    df = spark_session.createDataFrame([(1, "DE")], "cid int, cntry string")

    success, error_msg, _ = validate_schema(df, BRONZE_CUSTOMER_LOCATIONS_SCHEMA)

    assert not success
    assert "cid" in error_msg


def test_add_metadata_columns(spark_session):
    df = spark_session.createDataFrame([("AW1",)], "cid string")

    result = add_metadata_columns(df)

    assert result.columns == ["cid", "dwh_create_date"]
    assert result.collect()[0]["dwh_create_date"] is not None


def test_find_unmatched_keys_ignores_nulls(spark_session):
    sales = spark_session.createDataFrame(
        [("A",), ("B",), (None,)], "sls_prd_key string"
    )
    products = spark_session.createDataFrame([("A",), (None,)], "prd_key string")

    unmatched = find_unmatched_keys(sales, "sls_prd_key", products, "prd_key")

    assert [row["sls_prd_key"] for row in unmatched.collect()] == ["B"]


def test_logging_listener(caplog):
    listener = LoggingStageListener()

    with caplog.at_level("INFO"):
        listener.on_stage_end("customers", "crm_cust_info", 1.234, 18484)

    assert "Loaded 18484 rows into silver.crm_cust_info in 1.23 seconds" in caplog.text
