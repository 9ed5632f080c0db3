#!/usr/bin/env python
"""
Silver Layer Load

This script runs every silver conformance stage in order:
1. Customers (crm_cust_info)
2. Products (crm_prd_info)
3. Sales (crm_sales_details), which checks references against the silver
   customers and products written by the two stages above
4. Customer demographics (erp_cust_az12)
5. Customer locations (erp_loc_a101)
6. Product categories (erp_px_cat_g1v2)

Each stage overwrites its silver table in one Delta commit. When a stage fails,
the remaining stages are skipped and, with rollback enabled, every silver table
already rewritten during the run is restored to the version it had before the run.

Usage:
    python -m etl.silver.load_silver [--bucket-name BUCKET_NAME] [--region REGION] [--no-rollback]
"""

import argparse
import logging
import sys
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from pyspark.sql import SparkSession

from etl.common.observability import LoggingStageListener, StageListener
from etl.common.spark_session import (
    create_spark_session,
    get_delta_table_version,
    restore_delta_table,
)
from etl.silver.customer_demographics_etl import load_silver_customer_demographics
from etl.silver.customer_locations_etl import load_silver_customer_locations
from etl.silver.customers_etl import load_silver_customers
from etl.silver.product_categories_etl import load_silver_product_categories
from etl.silver.products_etl import load_silver_products
from etl.silver.sales_etl import load_silver_sales
from config import (
    S3_BUCKET_NAME,
    AWS_REGION,
    LOG_LEVEL,
    LOG_FORMAT,
    ROLLBACK_ON_FAILURE,
    get_prefix,
)

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL), format=LOG_FORMAT)
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SilverStage:
    """One conformance stage: a name, the table it owns and its loader."""

    name: str
    table: str
    load: Callable[[SparkSession, str], int]


# Sales must come after customers and products
SILVER_STAGES: Tuple[SilverStage, ...] = (
    SilverStage("customers", "crm_cust_info", load_silver_customers),
    SilverStage("products", "crm_prd_info", load_silver_products),
    SilverStage("sales", "crm_sales_details", load_silver_sales),
    SilverStage(
        "customer_demographics", "erp_cust_az12", load_silver_customer_demographics
    ),
    SilverStage("customer_locations", "erp_loc_a101", load_silver_customer_locations),
    SilverStage(
        "product_categories", "erp_px_cat_g1v2", load_silver_product_categories
    ),
)


@dataclass
class SilverLoadResult:
    """Outcome of a successful silver layer load."""

    row_counts: Dict[str, int] = field(default_factory=dict)
    duration_seconds: float = 0.0


class SilverLoadError(Exception):
    """Raised when a stage fails; carries the stage and the rollback outcome."""

    def __init__(
        self,
        stage: str,
        table: str,
        cause: BaseException,
        restored_tables: Optional[List[str]] = None,
        unrestored_tables: Optional[List[str]] = None,
    ):
        self.stage = stage
        self.table = table
        self.cause = cause
        self.restored_tables = restored_tables or []
        self.unrestored_tables = unrestored_tables or []
        super().__init__(f"Silver layer load failed in stage {stage} ({table}): {cause}")

    def report(self) -> Dict[str, object]:
        """Terminal error report for the run."""
        return {
            "stage": self.stage,
            "table": self.table,
            "message": str(self.cause),
            "cause": type(self.cause).__name__,
            "restored_tables": self.restored_tables,
            "unrestored_tables": self.unrestored_tables,
        }


def rollback_silver_tables(
    spark: SparkSession,
    bucket_name: str,
    prior_versions: Dict[str, Optional[int]],
) -> Tuple[List[str], List[str]]:
    """
    Restore silver tables to the versions they had before the run.

    Tables still at their prior version are left alone. Tables created during
    the run have no prior version and cannot be restored.

    Args:
        spark: Spark session
        bucket_name: S3 bucket name
        prior_versions: Version of each table captured before its stage ran

    Returns:
        Tuple[List[str], List[str]]: Restored tables and tables left in their new state
    """
    restored, unrestored = [], []

    for table, prior_version in prior_versions.items():
        table_path = get_prefix("silver", table)

        try:
            current_version = get_delta_table_version(spark, table_path, bucket_name)
            if current_version == prior_version:
                continue

            if prior_version is None:
                logger.warning(
                    f"silver.{table} was created during this run and cannot be restored"
                )
                unrestored.append(table)
                continue

            restore_delta_table(spark, table_path, prior_version, bucket_name)
            restored.append(table)
        except Exception as e:
            logger.error(f"Error restoring silver.{table}: {str(e)}")
            unrestored.append(table)

    return restored, unrestored


def load_silver(
    spark: SparkSession,
    bucket_name: str,
    stages: Sequence[SilverStage] = SILVER_STAGES,
    listener: Optional[StageListener] = None,
    rollback_on_failure: bool = ROLLBACK_ON_FAILURE,
) -> SilverLoadResult:
    """
    Run the silver conformance stages in order.

    Args:
        spark: Spark session
        bucket_name: S3 bucket name
        stages: Stages to run, in order
        listener: Receives progress and duration events. Defaults to logging them.
        rollback_on_failure: Restore the tables rewritten by this run when a stage fails

    Returns:
        SilverLoadResult: Rows written per table and the run duration

    Raises:
        SilverLoadError: If a stage fails. Later stages are not run.
    """
    listener = listener or LoggingStageListener()
    listener.on_run_start([stage.name for stage in stages])

    run_started = time.monotonic()
    prior_versions: Dict[str, Optional[int]] = {}
    result = SilverLoadResult()

    for stage in stages:
        listener.on_stage_start(stage.name, stage.table)
        stage_started = time.monotonic()

        try:
            if rollback_on_failure:
                prior_versions[stage.table] = get_delta_table_version(
                    spark, get_prefix("silver", stage.table), bucket_name
                )

            row_count = stage.load(spark, bucket_name)
        except Exception as e:
            listener.on_stage_failure(
                stage.name, stage.table, time.monotonic() - stage_started, e
            )

            restored, unrestored = [], []
            if rollback_on_failure:
                restored, unrestored = rollback_silver_tables(
                    spark, bucket_name, prior_versions
                )

            listener.on_run_end(time.monotonic() - run_started, succeeded=False)
            raise SilverLoadError(
                stage.name, stage.table, e, restored, unrestored
            ) from e

        result.row_counts[stage.table] = row_count
        listener.on_stage_end(
            stage.name, stage.table, time.monotonic() - stage_started, row_count
        )

    result.duration_seconds = time.monotonic() - run_started
    listener.on_run_end(result.duration_seconds, succeeded=True)

    return result


def parse_arguments() -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        argparse.Namespace: Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Conform bronze CRM and ERP tables into the silver layer"
    )
    parser.add_argument(
        "--bucket-name",
        type=str,
        default=S3_BUCKET_NAME,
        help=f"S3 bucket name (default: {S3_BUCKET_NAME})",
    )
    parser.add_argument(
        "--region",
        type=str,
        default=AWS_REGION,
        help=f"AWS region (default: {AWS_REGION})",
    )
    parser.add_argument(
        "--no-rollback",
        action="store_true",
        help="Keep tables rewritten before a failing stage instead of restoring them",
    )

    return parser.parse_args()


def main(
    bucket_name: str, region: str, rollback_on_failure: bool = ROLLBACK_ON_FAILURE
) -> int:
    """
    Main function to run the silver layer load.

    Args:
        bucket_name: S3 bucket name
        region: AWS region
        rollback_on_failure: Restore rewritten tables when a stage fails

    Returns:
        int: Exit code (0 for success, 1 for failure)
    """
    logger.info(f"Starting Silver Layer Load (bucket: {bucket_name}, region: {region})")

    spark = None
    try:
        spark = create_spark_session(app_name="silver_layer_load")

        result = load_silver(spark, bucket_name, rollback_on_failure=rollback_on_failure)

        logger.info(f"Successfully completed Silver Layer Load: {result.row_counts}")
        return 0
    except SilverLoadError as e:
        report = e.report()
        logger.error("ERROR: Silver Layer Load Failed")
        for key, value in report.items():
            logger.error(f"{key}: {value}")
        return 1
    except Exception as e:
        logger.error(f"Error in Silver Layer Load: {str(e)}")
        return 1
    finally:
        if spark is not None:
            spark.stop()


if __name__ == "__main__":
    args = parse_arguments()
    exit_code = main(args.bucket_name, args.region, not args.no_rollback)
    sys.exit(exit_code)
