"""
Spark session utility for the CRM/ERP lakehouse.

This module provides functions to create and configure Spark sessions with Delta Lake
and to read, overwrite and restore the Delta tables of the bronze and silver layers. It includes:
- Creating a Spark session with appropriate configurations
- Setting up Delta Lake integration
- Reading and writing Delta tables on S3
- Capturing and restoring Delta table versions for all-or-nothing loads
"""

import logging
from typing import Dict, List, Optional, Union

from pyspark.sql import DataFrame, SparkSession

from config import (
    AWS_REGION,
    S3_BUCKET_NAME,
    DELTA_TABLE_PROPERTIES,
    SPARK_SQL_CONFIG,
    LOG_LEVEL,
    LOG_FORMAT,
)

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL), format=LOG_FORMAT)
logger = logging.getLogger(__name__)


def create_spark_session(
    app_name: str = "CRM ERP Lakehouse",
    master: str = "local[*]",
    config_props: Optional[Dict[str, str]] = None,
    enable_delta: bool = True,
    log_level: str = "WARN",
) -> SparkSession:
    """
    Create and configure a Spark session with Delta Lake support.

    Args:
        app_name: Name of the Spark application
        master: Spark master URL (local[*] for local mode, yarn for YARN cluster)
        config_props: Additional configuration properties for Spark
        enable_delta: Whether to enable Delta Lake support
        log_level: Log level for Spark (WARN, INFO, DEBUG, etc.)

    Returns:
        SparkSession: Configured Spark session
    """
    builder = SparkSession.builder.appName(app_name).master(master)

    default_configs = {
        # General Spark configs
        "spark.sql.adaptive.enabled": "true",
        "spark.sql.adaptive.coalescePartitions.enabled": "true",
        # AWS configs
        "spark.hadoop.fs.s3a.impl": "org.apache.hadoop.fs.s3a.S3AFileSystem",
        "spark.hadoop.fs.s3a.aws.credentials.provider": "com.amazonaws.auth.DefaultAWSCredentialsProviderChain",
        "spark.hadoop.fs.s3a.endpoint": f"s3.{AWS_REGION}.amazonaws.com",
        "spark.hadoop.fs.s3a.path.style.access": "false",
        "spark.hadoop.fs.s3a.connection.ssl.enabled": "true",
    }
    default_configs.update(SPARK_SQL_CONFIG)

    if enable_delta:
        default_configs.update(
            {
                "spark.sql.extensions": "io.delta.sql.DeltaSparkSessionExtension",
                "spark.sql.catalog.spark_catalog": "org.apache.spark.sql.delta.catalog.DeltaCatalog",
                "spark.databricks.delta.optimizeWrite.enabled": "true",
                "spark.databricks.delta.autoCompact.enabled": "true",
            }
        )
        for key, value in DELTA_TABLE_PROPERTIES.items():
            default_configs[key] = value

    # Add user-provided configs, overriding defaults if needed
    if config_props:
        default_configs.update(config_props)

    for key, value in default_configs.items():
        builder = builder.config(key, value)

    if enable_delta:
        from delta import configure_spark_with_delta_pip

        builder = configure_spark_with_delta_pip(builder)
        logger.info("Delta Lake support enabled")

    spark = builder.getOrCreate()
    spark.sparkContext.setLogLevel(log_level)

    logger.info(f"Created Spark session with app name: {app_name}")

    return spark


def get_table_path(table_path: str, bucket_name: Optional[str] = None) -> str:
    """
    Build the full s3a:// path of a Delta table.

    Args:
        table_path: Path to the Delta table (without s3:// prefix)
        bucket_name: S3 bucket name. If None, uses the default from config.

    Returns:
        str: Full table path
    """
    if bucket_name is None:
        bucket_name = S3_BUCKET_NAME

    # Ensure the path doesn't start with a slash
    if table_path.startswith("/"):
        table_path = table_path[1:]

    return f"s3a://{bucket_name}/{table_path}"


def read_delta_table(
    spark: SparkSession,
    table_path: str,
    bucket_name: Optional[str] = None,
) -> DataFrame:
    """
    Read a Delta table from S3.

    Args:
        spark: Spark session
        table_path: Path to the Delta table (without s3:// prefix)
        bucket_name: S3 bucket name. If None, uses the default from config.

    Returns:
        DataFrame: Spark DataFrame containing the Delta table data
    """
    full_path = get_table_path(table_path, bucket_name)

    try:
        df = spark.read.format("delta").load(full_path)
        logger.info(f"Successfully read Delta table from {full_path}")
        return df
    except Exception as e:
        logger.error(f"Failed to read Delta table from {full_path}: {str(e)}")
        raise


def write_delta_table(
    df: DataFrame,
    table_path: str,
    mode: str = "overwrite",
    z_order_by: Optional[Union[str, List[str]]] = None,
    bucket_name: Optional[str] = None,
) -> None:
    """
    Write a DataFrame to a Delta table in S3.

    An overwrite replaces the whole table in a single Delta commit, so readers
    see either the previous or the new contents.

    Args:
        df: Spark DataFrame to write
        table_path: Path to the Delta table (without s3:// prefix)
        mode: Write mode (overwrite, append, etc.)
        z_order_by: Column(s) to Z-order by (for optimization)
        bucket_name: S3 bucket name. If None, uses the default from config.

    Returns:
        None
    """
    full_path = get_table_path(table_path, bucket_name)

    try:
        writer = df.write.format("delta").mode(mode)

        if mode == "overwrite":
            writer = writer.option("overwriteSchema", "true")

        writer.save(full_path)

        if z_order_by:
            if isinstance(z_order_by, str):
                z_order_by = [z_order_by]

            z_order_cols = ", ".join(z_order_by)
            df.sparkSession.sql(
                f"OPTIMIZE delta.`{full_path}` ZORDER BY ({z_order_cols})"
            )

        logger.info(f"Successfully wrote Delta table to {full_path}")
    except Exception as e:
        logger.error(f"Failed to write Delta table to {full_path}: {str(e)}")
        raise


def get_delta_table_version(
    spark: SparkSession,
    table_path: str,
    bucket_name: Optional[str] = None,
) -> Optional[int]:
    """
    Get the current version of a Delta table.

    Args:
        spark: Spark session
        table_path: Path to the Delta table (without s3:// prefix)
        bucket_name: S3 bucket name. If None, uses the default from config.

    Returns:
        Optional[int]: Latest committed version, or None if no Delta table exists at the path
    """
    from delta.tables import DeltaTable

    full_path = get_table_path(table_path, bucket_name)

    if not DeltaTable.isDeltaTable(spark, full_path):
        logger.info(f"No Delta table found at {full_path}")
        return None

    history = DeltaTable.forPath(spark, full_path).history(1).collect()
    version = history[0]["version"]
    logger.info(f"Delta table {full_path} is at version {version}")
    return version


def restore_delta_table(
    spark: SparkSession,
    table_path: str,
    version: int,
    bucket_name: Optional[str] = None,
) -> None:
    """
    Restore a Delta table to an earlier version.

    Args:
        spark: Spark session
        table_path: Path to the Delta table (without s3:// prefix)
        version: Version to restore
        bucket_name: S3 bucket name. If None, uses the default from config.

    Returns:
        None
    """
    from delta.tables import DeltaTable

    full_path = get_table_path(table_path, bucket_name)

    try:
        DeltaTable.forPath(spark, full_path).restoreToVersion(version)
        logger.info(f"Restored Delta table {full_path} to version {version}")
    except Exception as e:
        logger.error(
            f"Failed to restore Delta table {full_path} to version {version}: {str(e)}"
        )
        raise
