"""
Async bucket lifecycle for S3-compatible object storage systems.

Only bucket preparation goes through the SDK; benchmark traffic is signed
and sent by the worker threads directly.
"""

import asyncio
import logging
from typing import List, Optional

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from common.errors import SetupError
from configuration import (
    CONNECT_TIMEOUT_SECONDS,
    LIST_PAGE_SIZE,
    MIN_POOL_CONNECTIONS,
    SETUP_READ_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)

BUCKET_EXISTS_CODES = ("BucketAlreadyOwnedByYou", "BucketAlreadyExists")


class ObjectStorageSystem:
    """Async S3 client wrapper used to prepare the benchmark bucket."""

    def __init__(self, endpoint: str, bucket_name: str, credentials: dict,
                 verify_tls: bool = False, max_pool_connections: int = MIN_POOL_CONNECTIONS):
        self.endpoint = endpoint
        self.bucket_name = bucket_name
        self.credentials = credentials
        self.verify_tls = verify_tls

        self._config = self._create_config(max_pool_connections)

        self.session = aioboto3.Session(
            aws_access_key_id=credentials.get("access_key_id"),
            aws_secret_access_key=credentials.get("secret_access_key"),
            region_name=credentials.get("region_name", "us-east-1"),
        )

        self.client = None

        logger.info(f"Initialized storage client for {endpoint} (bucket={bucket_name})")

    def _create_config(self, max_pool_connections: int) -> Config:
        """Create the botocore config for setup calls."""
        return Config(
            max_pool_connections=max_pool_connections,
            connect_timeout=CONNECT_TIMEOUT_SECONDS,
            read_timeout=SETUP_READ_TIMEOUT_SECONDS,
            retries={
                "max_attempts": 3,
                "mode": "standard",
            },
            s3={
                "addressing_style": "path",
            },
            tcp_keepalive=True,
        )

    async def __aenter__(self):
        """Async context manager entry."""
        self.client = await self.session.client(
            "s3",
            endpoint_url=self.endpoint,
            config=self._config,
            verify=self.verify_tls,
        ).__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self.client:
            await self.client.__aexit__(exc_type, exc_val, exc_tb)
            self.client = None

    def _require_client(self):
        if not self.client:
            raise RuntimeError("Storage client not initialized. Use async context manager.")
        return self.client

    async def create_bucket(self) -> bool:
        """Create the bucket, tolerating one that already exists.

        Returns:
            True if the bucket was created, False if it already existed

        Raises:
            SetupError: For any other failure
        """
        client = self._require_client()
        try:
            await client.create_bucket(Bucket=self.bucket_name)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in BUCKET_EXISTS_CODES:
                logger.warning(f"Bucket {self.bucket_name} already exists, proceeding")
                return False
            raise SetupError(
                f"Unable to create bucket {self.bucket_name} "
                f"(is your access and secret correct?): {e}"
            ) from e
        except BotoCoreError as e:
            raise SetupError(f"Unable to create bucket {self.bucket_name}: {e}") from e

        logger.info(f"Created bucket {self.bucket_name}")
        return True

    async def _delete_batch(self, keys: List[str]) -> None:
        client = self._require_client()
        response = await client.delete_objects(
            Bucket=self.bucket_name,
            Delete={"Objects": [{"Key": key} for key in keys], "Quiet": True},
        )
        errors = response.get("Errors") or []
        if errors:
            first = errors[0]
            raise SetupError(
                f"DeleteObjects failed for {len(errors)} keys, "
                f"first: {first.get('Key')} {first.get('Code')} {first.get('Message')}"
            )

    async def delete_all_objects(self) -> int:
        """Delete every object in the bucket.

        Pages through ListObjects 1000 keys at a time and issues one
        DeleteObjects call per page concurrently.

        Returns:
            Number of objects submitted for deletion

        Raises:
            SetupError: If listing or deleting fails
        """
        client = self._require_client()
        marker: Optional[str] = None
        delete_tasks: List[asyncio.Task] = []
        total = 0

        try:
            while True:
                params = {"Bucket": self.bucket_name, "MaxKeys": LIST_PAGE_SIZE}
                if marker:
                    params["Marker"] = marker
                try:
                    page = await client.list_objects(**params)
                except ClientError as e:
                    if e.response.get("Error", {}).get("Code") == "NoSuchBucket":
                        logger.info(f"Bucket {self.bucket_name} does not exist, nothing to delete")
                        return 0
                    raise SetupError(f"ListObjects unexpected failure: {e}") from e
                except BotoCoreError as e:
                    raise SetupError(f"ListObjects unexpected failure: {e}") from e

                keys = [obj["Key"] for obj in page.get("Contents", [])]
                if keys:
                    total += len(keys)
                    delete_tasks.append(asyncio.create_task(self._delete_batch(keys)))

                if not page.get("IsTruncated"):
                    break
                # NextMarker is only returned with a delimiter, fall back to the last key
                marker = page.get("NextMarker") or (keys[-1] if keys else None)
                if not marker:
                    break
        finally:
            results = await asyncio.gather(*delete_tasks, return_exceptions=True)

        for result in results:
            if isinstance(result, SetupError):
                raise result
            if isinstance(result, Exception):
                raise SetupError(f"DeleteObjects unexpected failure: {result}") from result

        if total:
            logger.info(f"Deleted {total} existing objects from {self.bucket_name}")
        return total
