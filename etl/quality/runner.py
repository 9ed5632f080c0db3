#!/usr/bin/env python
"""
Quality Check Runner

This script runs the quality checks against the bronze or the silver layer:
1. Read the tables the checks need, plus the silver tables used as reference
2. Evaluate every check and count its violating rows
3. Log a summary and, optionally, upload a JSON report to S3

Acceptance checks are expected to return no rows on the silver layer. Profile
checks only describe the data and never fail.

Usage:
    python -m etl.quality.runner [--layer {bronze,silver}] [--bucket-name BUCKET_NAME]
        [--region REGION] [--upload-report] [--fail-on-violations] [--list-reports]
"""

import argparse
import logging
import sys
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pyspark.sql import DataFrame, SparkSession

from etl.common.s3_utils import list_quality_reports, upload_json
from etl.common.spark_session import create_spark_session, read_delta_table
from etl.quality.checks import ACCEPTANCE, LAYERS, QualityCheck, get_checks
from config import (
    S3_BUCKET_NAME,
    AWS_REGION,
    LOG_LEVEL,
    LOG_FORMAT,
    QUALITY_SAMPLE_SIZE,
    get_prefix,
)

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL), format=LOG_FORMAT)
logger = logging.getLogger(__name__)

# Exit code when an acceptance check fails and the run asked to fail on violations
EXIT_VIOLATIONS = 2


@dataclass
class CheckResult:
    """Outcome of one quality check."""

    check: str
    table: str
    family: str
    kind: str
    layer: str
    violation_count: int = 0
    sample: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def passed(self) -> bool:
        if self.error is not None:
            return False
        return self.kind != ACCEPTANCE or self.violation_count == 0


def sample_rows(df: DataFrame, sample_size: int) -> List[Dict[str, Any]]:
    """
    Collect a few rows of a DataFrame as plain records.

    Args:
        df: DataFrame to sample
        sample_size: Maximum number of rows

    Returns:
        List[Dict[str, Any]]: Records with missing values as None
    """
    pdf = df.limit(sample_size).toPandas()
    pdf = pdf.astype(object).where(pdf.notna(), None)
    return pdf.to_dict(orient="records")


def load_layer_tables(
    spark: SparkSession, layer: str, table_names: Sequence[str], bucket_name: str
) -> Dict[str, DataFrame]:
    """
    Read tables of a layer.

    Args:
        spark: Spark session
        layer: Data layer (bronze, silver)
        table_names: Tables to read
        bucket_name: S3 bucket name

    Returns:
        Dict[str, DataFrame]: Tables by name
    """
    tables = {}
    for table in table_names:
        table_path = get_prefix(layer, table)
        logger.info(f"Reading {layer}.{table} from {table_path}")
        tables[table] = read_delta_table(
            spark=spark, table_path=table_path, bucket_name=bucket_name
        )
    return tables


def run_quality_check(
    check: QualityCheck,
    tables: Mapping[str, DataFrame],
    reference: Mapping[str, DataFrame],
    layer: str,
    sample_size: int = QUALITY_SAMPLE_SIZE,
) -> CheckResult:
    """
    Evaluate a single check.

    A check that cannot be evaluated is reported with its error instead of
    stopping the other checks.

    Args:
        check: Check to evaluate
        tables: Tables of the layer being checked
        reference: Silver tables used by cross-entity checks
        layer: Data layer being checked
        sample_size: Maximum number of violating rows kept in the result

    Returns:
        CheckResult: Violation count and sample
    """
    result = CheckResult(
        check=check.name,
        table=check.table,
        family=check.family,
        kind=check.kind,
        layer=layer,
    )

    try:
        violations = check.find_violations(tables, reference)
        result.violation_count = violations.count()
        if result.violation_count:
            result.sample = sample_rows(violations, sample_size)
    except Exception as e:
        logger.error(f"Error evaluating check {check.name}: {str(e)}")
        result.error = str(e)

    return result


def run_quality_checks(
    spark: SparkSession,
    layer: str,
    bucket_name: str = S3_BUCKET_NAME,
    checks: Optional[Sequence[QualityCheck]] = None,
    sample_size: int = QUALITY_SAMPLE_SIZE,
    tables: Optional[Mapping[str, DataFrame]] = None,
    reference: Optional[Mapping[str, DataFrame]] = None,
) -> List[CheckResult]:
    """
    Run quality checks against a layer.

    Args:
        spark: Spark session
        layer: Data layer to check (bronze, silver)
        bucket_name: S3 bucket name
        checks: Checks to run. Defaults to every check for the layer.
        sample_size: Maximum number of violating rows kept per check
        tables: Already loaded tables of the layer. Read from S3 when omitted.
        reference: Already loaded silver reference tables. Read from S3 when omitted.

    Returns:
        List[CheckResult]: One result per check, in check order
    """
    if layer not in LAYERS:
        raise ValueError(f"Unknown layer: {layer}. Expected one of {LAYERS}")

    checks = list(checks) if checks is not None else get_checks(layer)
    logger.info(f"Running {len(checks)} quality checks against the {layer} layer")

    if tables is None:
        needed = sorted({check.table for check in checks})
        tables = load_layer_tables(spark, layer, needed, bucket_name)

    if reference is None:
        needed = sorted({name for check in checks for name in check.reference_tables})
        if layer == "silver":
            missing = [name for name in needed if name not in tables]
            reference = {
                **{name: tables[name] for name in needed if name in tables},
                **load_layer_tables(spark, "silver", missing, bucket_name),
            }
        else:
            reference = load_layer_tables(spark, "silver", needed, bucket_name)

    results = []
    for check in checks:
        result = run_quality_check(check, tables, reference, layer, sample_size)
        status = "PASS" if result.passed else "FAIL"
        logger.info(
            f"[{status}] {check.kind} {check.name}: {result.violation_count} rows"
        )
        results.append(result)

    return results


def summarize_results(results: Sequence[CheckResult]) -> Dict[str, Any]:
    """
    Summarize check results.

    Args:
        results: Check results

    Returns:
        Dict[str, Any]: Counts and the names of failed and errored checks
    """
    acceptance = [result for result in results if result.kind == ACCEPTANCE]
    return {
        "checks": len(results),
        "acceptance_checks": len(acceptance),
        "acceptance_failures": [
            result.check
            for result in acceptance
            if result.error is None and result.violation_count > 0
        ],
        "profile_findings": sum(
            1
            for result in results
            if result.kind != ACCEPTANCE and result.violation_count > 0
        ),
        "errors": [result.check for result in results if result.error is not None],
    }


def write_quality_report(
    results: Sequence[CheckResult],
    bucket_name: str,
    layer: str,
    region: Optional[str] = None,
) -> str:
    """
    Upload the results of a run as a JSON report.

    Args:
        results: Check results
        bucket_name: S3 bucket name
        layer: Data layer that was checked
        region: AWS region

    Returns:
        str: Key of the uploaded report

    Raises:
        RuntimeError: If the upload fails
    """
    generated_at = datetime.now(timezone.utc)
    report_key = (
        f"{get_prefix('quality', 'reports')}"
        f"{layer}_{generated_at.strftime('%Y%m%dT%H%M%SZ')}.json"
    )

    report = {
        "layer": layer,
        "generated_at": generated_at.isoformat(),
        "summary": summarize_results(results),
        "results": [
            {**asdict(result), "passed": result.passed} for result in results
        ],
    }

    if not upload_json(report, bucket_name, report_key, region_name=region):
        raise RuntimeError(f"Failed to upload quality report to {report_key}")

    return report_key


def show_quality_reports(
    bucket_name: str, layer: str, region: Optional[str] = None
) -> int:
    """
    Log the quality reports already stored for a layer, oldest first.

    Args:
        bucket_name: S3 bucket name
        layer: Data layer whose reports are listed
        region: AWS region

    Returns:
        int: Number of reports found
    """
    reports = list_quality_reports(bucket_name, layer, region)
    if not reports:
        logger.info(f"No {layer} quality reports in s3://{bucket_name}")
        return 0

    for report in reports:
        logger.info(
            f"{report['key']} ({report['size']} bytes, {report['last_modified']})"
        )
    return len(reports)


def parse_arguments() -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        argparse.Namespace: Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Run data quality checks against the bronze or silver layer"
    )
    parser.add_argument(
        "--layer",
        type=str,
        choices=LAYERS,
        default="silver",
        help="Layer to check (default: silver)",
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
        "--upload-report",
        action="store_true",
        help="Upload a JSON report of the run to S3",
    )
    parser.add_argument(
        "--fail-on-violations",
        action="store_true",
        help=f"Exit with code {EXIT_VIOLATIONS} when an acceptance check fails",
    )
    parser.add_argument(
        "--list-reports",
        action="store_true",
        help="List the stored quality reports for the layer instead of running the checks",
    )

    return parser.parse_args()


def main(
    layer: str,
    bucket_name: str,
    region: str,
    upload_report: bool = False,
    fail_on_violations: bool = False,
    list_reports: bool = False,
) -> int:
    """
    Main function to run the quality checks.

    Args:
        layer: Data layer to check (bronze, silver)
        bucket_name: S3 bucket name
        region: AWS region
        upload_report: Upload a JSON report to S3
        fail_on_violations: Return a non-zero exit code when an acceptance check fails
        list_reports: Only list the stored reports for the layer, without Spark

    Returns:
        int: Exit code (0 for success, 1 for errors, 2 for acceptance failures)
    """
    if list_reports:
        show_quality_reports(bucket_name, layer, region)
        return 0

    logger.info(f"Starting Quality Checks (layer: {layer}, bucket: {bucket_name})")

    spark = None
    try:
        spark = create_spark_session(app_name=f"quality_checks_{layer}")

        results = run_quality_checks(spark, layer, bucket_name)
        summary = summarize_results(results)

        logger.info(
            f"Completed {summary['checks']} checks: "
            f"{len(summary['acceptance_failures'])} acceptance failures, "
            f"{summary['profile_findings']} profile findings, "
            f"{len(summary['errors'])} errors"
        )
        for name in summary["acceptance_failures"]:
            logger.warning(f"Acceptance check failed: {name}")

        if upload_report:
            report_key = write_quality_report(results, bucket_name, layer, region)
            logger.info(f"Quality report written to s3://{bucket_name}/{report_key}")

        if summary["errors"]:
            return 1
        if fail_on_violations and summary["acceptance_failures"]:
            return EXIT_VIOLATIONS
        return 0
    except Exception as e:
        logger.error(f"Error in Quality Checks: {str(e)}")
        return 1
    finally:
        if spark is not None:
            spark.stop()


if __name__ == "__main__":
    args = parse_arguments()
    exit_code = main(
        args.layer,
        args.bucket_name,
        args.region,
        args.upload_report,
        args.fail_on_violations,
        args.list_reports,
    )
    sys.exit(exit_code)
