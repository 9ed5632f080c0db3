"""
Configuration settings for the CRM/ERP lakehouse.

This module contains all configuration settings for the Bronze-to-Silver
conformance pipeline and its quality checks, including:
- AWS settings (region, bucket name)
- Table layout of the bronze and silver layers
- Spark and Delta Lake settings
- Processing settings (rollback, quality report sampling, validity ranges)
- Logging settings

All settings can be overridden by environment variables with the same name prefixed with 'DWH_'.
For example, AWS_REGION can be overridden by setting the DWH_AWS_REGION environment variable.
"""

import os
from pathlib import Path
from typing import Dict, Any, List

# Project root directory
PROJECT_ROOT = Path(__file__).resolve().parents[1]

# AWS Settings
AWS_REGION = os.environ.get("DWH_AWS_REGION", "eu-west-1")
S3_BUCKET_NAME = os.environ.get("DWH_S3_BUCKET_NAME", "crm-erp-lakehouse")

# Source tables, shared by the bronze and silver layers
CRM_TABLES = ["crm_cust_info", "crm_prd_info", "crm_sales_details"]
ERP_TABLES = ["erp_cust_az12", "erp_loc_a101", "erp_px_cat_g1v2"]

# S3 Prefix Structure
S3_PREFIX_STRUCTURE = {
    # Bronze layer
    "bronze": {
        "base": "bronze/",
        **{table: f"bronze/{table}/" for table in CRM_TABLES + ERP_TABLES},
    },
    # Silver layer
    "silver": {
        "base": "silver/",
        **{table: f"silver/{table}/" for table in CRM_TABLES + ERP_TABLES},
    },
    # Quality check reports
    "quality": {
        "base": "quality/",
        "reports": "quality/reports/",
    },
}

# Processing settings
ROLLBACK_ON_FAILURE = (
    os.environ.get("DWH_ROLLBACK_ON_FAILURE", "true").lower() == "true"
)
QUALITY_SAMPLE_SIZE = int(os.environ.get("DWH_QUALITY_SAMPLE_SIZE", "20"))

# Valid range for YYYYMMDD sales dates (inclusive)
SALES_DATE_MIN = int(os.environ.get("DWH_SALES_DATE_MIN", "19000101"))
SALES_DATE_MAX = int(os.environ.get("DWH_SALES_DATE_MAX", "20500101"))

# Birth dates before this are reported as implausible by the quality checks
MIN_PLAUSIBLE_BIRTH_DATE = os.environ.get(
    "DWH_MIN_PLAUSIBLE_BIRTH_DATE", "1924-01-01"
)

# Logging settings
LOG_LEVEL = os.environ.get("DWH_LOG_LEVEL", "INFO")
LOG_FORMAT = os.environ.get(
    "DWH_LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Delta Lake settings
DELTA_TABLE_PROPERTIES = {
    "delta.autoOptimize.optimizeWrite": "true",
    "delta.autoOptimize.autoCompact": "true",
}

# Malformed dates and divisions must come back as NULL rather than fail the job
SPARK_SQL_CONFIG = {
    "spark.sql.ansi.enabled": "false",
    "spark.sql.legacy.timeParserPolicy": "CORRECTED",
}

# Schema settings
SCHEMA_VALIDATION = os.environ.get("DWH_SCHEMA_VALIDATION", "true").lower() == "true"


# Function to get a specific prefix
def get_prefix(layer: str, category: str) -> str:
    """
    Get a specific prefix from the S3 prefix structure.

    Args:
        layer: The data layer (bronze, silver, quality)
        category: The table or category within the layer

    Returns:
        str: The prefix

    Raises:
        KeyError: If the layer or category does not exist
    """
    return S3_PREFIX_STRUCTURE[layer][category]


def get_table_names(layer: str) -> List[str]:
    """
    Get the names of all tables stored in a layer.

    Args:
        layer: The data layer (bronze, silver)

    Returns:
        List[str]: Table names in load order
    """
    return [name for name in S3_PREFIX_STRUCTURE[layer] if name != "base"]


# Function to get all settings as a dictionary
def get_all_settings() -> Dict[str, Any]:
    """
    Get all settings as a dictionary.

    Returns:
        Dict[str, Any]: All settings
    """
    return {
        "AWS_REGION": AWS_REGION,
        "S3_BUCKET_NAME": S3_BUCKET_NAME,
        "S3_PREFIX_STRUCTURE": S3_PREFIX_STRUCTURE,
        "ROLLBACK_ON_FAILURE": ROLLBACK_ON_FAILURE,
        "QUALITY_SAMPLE_SIZE": QUALITY_SAMPLE_SIZE,
        "SALES_DATE_MIN": SALES_DATE_MIN,
        "SALES_DATE_MAX": SALES_DATE_MAX,
        "MIN_PLAUSIBLE_BIRTH_DATE": MIN_PLAUSIBLE_BIRTH_DATE,
        "LOG_LEVEL": LOG_LEVEL,
        "LOG_FORMAT": LOG_FORMAT,
        "DELTA_TABLE_PROPERTIES": DELTA_TABLE_PROPERTIES,
        "SPARK_SQL_CONFIG": SPARK_SQL_CONFIG,
        "SCHEMA_VALIDATION": SCHEMA_VALIDATION,
    }
