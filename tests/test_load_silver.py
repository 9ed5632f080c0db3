"""
Tests for the Silver Layer Load.

This module contains tests for stage ordering, failure handling, rollback and
progress reporting of etl/silver/load_silver.py.
"""

import sys
import unittest
from pathlib import Path
from unittest.mock import MagicMock, call, patch

# Add the project root to the Python path
sys.path.append(str(Path(__file__).resolve().parents[1]))

from etl.common.observability import StageListener
from etl.silver.load_silver import (
    SILVER_STAGES,
    SilverLoadError,
    SilverStage,
    load_silver,
    main,
    rollback_silver_tables,
)


class RecordingStageListener(StageListener):
    """Keeps the listener events in call order."""

    def __init__(self):
        self.events = []

    def on_run_start(self, stages):
        self.events.append(("run_start", {"stages": list(stages)}))

    def on_stage_start(self, stage, table):
        self.events.append(("stage_start", {"stage": stage, "table": table}))

    def on_stage_end(self, stage, table, duration_seconds, row_count):
        self.events.append(("stage_end", {"stage": stage, "row_count": row_count}))

    def on_stage_failure(self, stage, table, duration_seconds, error):
        self.events.append(("stage_failure", {"stage": stage, "error": str(error)}))

    def on_run_end(self, duration_seconds, succeeded):
        self.events.append(("run_end", {"succeeded": succeeded}))

    def event_names(self):
        return [name for name, _ in self.events]


class TestSilverStages(unittest.TestCase):
    """Test cases for the stage sequence."""

    def test_stage_order(self):
        """Sales runs after the customers and products it references."""
        tables = [stage.table for stage in SILVER_STAGES]
        self.assertEqual(
            tables,
            [
                "crm_cust_info",
                "crm_prd_info",
                "crm_sales_details",
                "erp_cust_az12",
                "erp_loc_a101",
                "erp_px_cat_g1v2",
            ],
        )


@patch("etl.silver.load_silver.restore_delta_table")
@patch("etl.silver.load_silver.get_delta_table_version")
class TestLoadSilver(unittest.TestCase):
    """Test cases for load_silver."""

    def setUp(self):
        """Set up test fixtures."""
        self.spark = MagicMock()
        self.customers = MagicMock(return_value=3)
        self.products = MagicMock(return_value=5)
        self.sales = MagicMock(return_value=4)
        self.stages = [
            SilverStage("customers", "crm_cust_info", self.customers),
            SilverStage("products", "crm_prd_info", self.products),
            SilverStage("sales", "crm_sales_details", self.sales),
        ]

    def test_all_stages_run_in_order(self, mock_version, mock_restore):
        listener = RecordingStageListener()
        mock_version.return_value = 1

        result = load_silver(
            self.spark, "test-bucket", stages=self.stages, listener=listener
        )

        self.assertEqual(
            result.row_counts,
            {"crm_cust_info": 3, "crm_prd_info": 5, "crm_sales_details": 4},
        )
        for loader in (self.customers, self.products, self.sales):
            loader.assert_called_once_with(self.spark, "test-bucket")
        self.assertEqual(
            listener.event_names(),
            ["run_start"] + ["stage_start", "stage_end"] * 3 + ["run_end"],
        )
        self.assertTrue(listener.events[-1][1]["succeeded"])
        mock_restore.assert_not_called()

    def test_failure_skips_later_stages(self, mock_version, mock_restore):
        listener = RecordingStageListener()
        mock_version.return_value = 1
        self.products.side_effect = RuntimeError("disk full")

        with self.assertRaises(SilverLoadError) as context:
            load_silver(
                self.spark,
                "test-bucket",
                stages=self.stages,
                listener=listener,
                rollback_on_failure=False,
            )

        error = context.exception
        self.assertEqual(error.stage, "products")
        self.assertEqual(error.table, "crm_prd_info")
        self.assertIsInstance(error.__cause__, RuntimeError)
        self.sales.assert_not_called()
        self.assertEqual(
            listener.event_names(),
            ["run_start", "stage_start", "stage_end", "stage_start", "stage_failure", "run_end"],
        )
        self.assertFalse(listener.events[-1][1]["succeeded"])
        mock_version.assert_not_called()
        mock_restore.assert_not_called()

    def test_failure_restores_rewritten_tables(self, mock_version, mock_restore):
        # Versions captured before customers and products, then read back on rollback
        mock_version.side_effect = [4, 9, 5, 9]
        self.products.side_effect = RuntimeError("boom")

        with self.assertRaises(SilverLoadError) as context:
            load_silver(self.spark, "test-bucket", stages=self.stages)

        mock_restore.assert_called_once_with(
            self.spark, "silver/crm_cust_info/", 4, "test-bucket"
        )
        self.assertEqual(context.exception.restored_tables, ["crm_cust_info"])
        self.assertEqual(context.exception.unrestored_tables, [])

        report = context.exception.report()
        self.assertEqual(report["stage"], "products")
        self.assertEqual(report["cause"], "RuntimeError")
        self.assertEqual(report["message"], "boom")


@patch("etl.silver.load_silver.restore_delta_table")
@patch("etl.silver.load_silver.get_delta_table_version")
class TestRollbackSilverTables(unittest.TestCase):
    """Test cases for rollback_silver_tables."""

    def test_new_table_cannot_be_restored(self, mock_version, mock_restore):
        mock_version.return_value = 0

        restored, unrestored = rollback_silver_tables(
            MagicMock(), "test-bucket", {"crm_cust_info": None}
        )

        self.assertEqual(restored, [])
        self.assertEqual(unrestored, ["crm_cust_info"])
        mock_restore.assert_not_called()

    def test_unchanged_table_is_left_alone(self, mock_version, mock_restore):
        mock_version.return_value = 3

        restored, unrestored = rollback_silver_tables(
            MagicMock(), "test-bucket", {"crm_cust_info": 3}
        )

        self.assertEqual((restored, unrestored), ([], []))
        mock_restore.assert_not_called()

    def test_restore_error_is_reported(self, mock_version, mock_restore):
        mock_version.return_value = 4
        mock_restore.side_effect = Exception("access denied")
        spark = MagicMock()

        restored, unrestored = rollback_silver_tables(
            spark, "test-bucket", {"crm_cust_info": 2, "crm_prd_info": 3}
        )

        self.assertEqual(restored, [])
        self.assertEqual(unrestored, ["crm_cust_info", "crm_prd_info"])
        mock_restore.assert_has_calls(
            [
                call(spark, "silver/crm_cust_info/", 2, "test-bucket"),
                call(spark, "silver/crm_prd_info/", 3, "test-bucket"),
            ]
        )


class TestMain(unittest.TestCase):
    """Test cases for main."""

    @patch("etl.silver.load_silver.load_silver")
    @patch("etl.silver.load_silver.create_spark_session")
    def test_main_success(self, mock_create_spark, mock_load_silver):
        spark = MagicMock()
        mock_create_spark.return_value = spark

        result = main("test-bucket", "us-east-1")

        self.assertEqual(result, 0)
        mock_load_silver.assert_called_once_with(
            spark, "test-bucket", rollback_on_failure=True
        )
        spark.stop.assert_called_once()

    @patch("etl.silver.load_silver.load_silver")
    @patch("etl.silver.load_silver.create_spark_session")
    def test_main_failure(self, mock_create_spark, mock_load_silver):
        spark = MagicMock()
        mock_create_spark.return_value = spark
        mock_load_silver.side_effect = SilverLoadError(
            "sales", "crm_sales_details", ValueError("bad schema")
        )

        result = main("test-bucket", "us-east-1", rollback_on_failure=False)

        self.assertEqual(result, 1)
        spark.stop.assert_called_once()


if __name__ == "__main__":
    unittest.main()
