#!/usr/bin/env python
"""
Run Silver ETL

This script runs every silver conformance stage, from the CRM customers to the
ERP product categories.

Usage:
    python scripts/run_silver_etl.py [--bucket-name BUCKET_NAME] [--region REGION] [--no-rollback]
"""

import argparse
import logging
import sys
from pathlib import Path

# Add the project root to the Python path
sys.path.append(str(Path(__file__).resolve().parents[1]))

from etl.silver.load_silver import main
from config import S3_BUCKET_NAME, AWS_REGION, LOG_LEVEL, LOG_FORMAT

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL), format=LOG_FORMAT)
logger = logging.getLogger(__name__)


def parse_arguments() -> argparse.Namespace:
    """
    Parse command line arguments.

    Returns:
        argparse.Namespace: Parsed arguments
    """
    parser = argparse.ArgumentParser(description="Run Silver ETL")
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
        help="Do not restore silver tables when a stage fails",
    )

    return parser.parse_args()


if __name__ == "__main__":
    args = parse_arguments()
    logger.info(f"Running Silver ETL for bucket: {args.bucket_name}")
    exit_code = main(args.bucket_name, args.region, not args.no_rollback)
    logger.info(f"Silver ETL completed with exit code: {exit_code}")
    sys.exit(exit_code)
