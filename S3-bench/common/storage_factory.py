"""
Factory module for creating storage system instances.
"""

import logging

# Suppress boto3/botocore logging BEFORE importing any boto3-related modules
logging.getLogger('botocore').setLevel(logging.CRITICAL)
logging.getLogger('botocore.credentials').setLevel(logging.CRITICAL)
logging.getLogger('boto3').setLevel(logging.CRITICAL)
logging.getLogger('aioboto3').setLevel(logging.CRITICAL)
logging.getLogger('aiobotocore').setLevel(logging.CRITICAL)
logging.getLogger('urllib3').setLevel(logging.CRITICAL)
logging.getLogger('s3transfer').setLevel(logging.CRITICAL)

from systems.base import ObjectStorageSystem
from configuration import BenchmarkConfig

logger = logging.getLogger(__name__)


def create_storage_system(config: BenchmarkConfig) -> ObjectStorageSystem:
    """Create the storage client used for bucket setup and cleanup.

    Args:
        config: Validated benchmark configuration

    Returns:
        ObjectStorageSystem bound to the configured endpoint and bucket
    """
    credentials = {
        "access_key_id": config.access_key,
        "secret_access_key": config.secret_key,
        "region_name": config.region,
    }
    return ObjectStorageSystem(
        endpoint=config.endpoint,
        bucket_name=config.bucket,
        credentials=credentials,
        verify_tls=config.verify_tls,
    )
