#!/usr/bin/env python
"""
Run Quality Checks

This script runs the data quality checks against the bronze or silver layer.

Usage:
    python scripts/run_quality_checks.py [--layer {bronze,silver}] [--bucket-name BUCKET_NAME]
        [--region REGION] [--upload-report] [--fail-on-violations] [--list-reports]
"""

import logging
import sys
from pathlib import Path

# Add the project root to the Python path
sys.path.append(str(Path(__file__).resolve().parents[1]))

from etl.quality.runner import main, parse_arguments
from config import LOG_LEVEL, LOG_FORMAT

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL), format=LOG_FORMAT)
logger = logging.getLogger(__name__)


if __name__ == "__main__":
    args = parse_arguments()
    logger.info(f"Running Quality Checks for the {args.layer} layer")
    exit_code = main(
        args.layer,
        args.bucket_name,
        args.region,
        args.upload_report,
        args.fail_on_violations,
        args.list_reports,
    )
    logger.info(f"Quality Checks completed with exit code: {exit_code}")
    sys.exit(exit_code)
