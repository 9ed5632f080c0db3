"""
Utility functions for Amazon S3 operations.

This module provides helper functions for the S3 operations the lakehouse needs
outside of Spark:
- Creating clients
- Uploading JSON documents such as quality reports
- Listing stored quality reports

All functions include proper error handling and type hints.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from config import LOG_LEVEL, LOG_FORMAT, get_prefix

# Configure logging
logging.basicConfig(level=getattr(logging, LOG_LEVEL), format=LOG_FORMAT)
logger = logging.getLogger(__name__)


def create_s3_client(region_name: Optional[str] = None) -> Any:
    """
    Create and return an S3 client.

    Args:
        region_name: AWS region name. If None, uses the default region from AWS configuration.

    Returns:
        boto3.client: Configured S3 client
    """
    try:
        return boto3.client("s3", region_name=region_name)
    except Exception as e:
        logger.error(f"Failed to create S3 client: {str(e)}")
        raise


def upload_json(
    payload: Dict[str, Any],
    bucket_name: str,
    object_key: str,
    region_name: Optional[str] = None,
) -> bool:
    """
    Serialize a document to JSON and upload it to S3.

    Values JSON cannot represent natively (dates, timestamps) are written as strings.

    Args:
        payload: Document to upload
        bucket_name: Name of the bucket
        object_key: Key of the object to write
        region_name: AWS region name

    Returns:
        bool: True if the upload succeeded, False otherwise
    """
    s3_client = create_s3_client(region_name)

    try:
        s3_client.put_object(
            Bucket=bucket_name,
            Key=object_key,
            Body=json.dumps(payload, indent=2, default=str).encode("utf-8"),
            ContentType="application/json",
        )
        logger.info(f"Uploaded s3://{bucket_name}/{object_key}")
        return True
    except ClientError as e:
        logger.error(f"Failed to upload s3://{bucket_name}/{object_key}: {str(e)}")
        return False


def list_quality_reports(
    bucket_name: str, layer: Optional[str] = None, region_name: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    List the quality reports stored in a bucket, oldest first.

    Args:
        bucket_name: Name of the S3 bucket
        layer: Only list reports for this layer (bronze, silver)
        region_name: AWS region name

    Returns:
        List[Dict[str, Any]]: Report keys with their size and modification time
    """
    s3_client = create_s3_client(region_name)

    prefix = get_prefix("quality", "reports")
    if layer:
        prefix = f"{prefix}{layer}_"

    try:
        paginator = s3_client.get_paginator("list_objects_v2")

        reports = []
        for page in paginator.paginate(Bucket=bucket_name, Prefix=prefix):
            for obj in page.get("Contents", []):
                reports.append(
                    {
                        "key": obj["Key"],
                        "size": obj["Size"],
                        "last_modified": obj["LastModified"].isoformat(),
                    }
                )

        return sorted(reports, key=lambda report: report["key"])
    except ClientError as e:
        logger.error(f"Failed to list quality reports in {bucket_name}: {str(e)}")
        return []
