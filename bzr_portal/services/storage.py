"""S3-compatible object storage (Wasabi) gateway."""
import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from bzr_portal.core.config import settings
from bzr_portal.core.exceptions import ObjectNotFoundError, StorageUnavailableError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"NoSuchKey", "NoSuchBucket", "404", "NotFound"}


def get_s3_client():
    """Get or create S3 client with current settings."""
    return boto3.client(
        's3',
        endpoint_url=settings.WASABI_ENDPOINT,
        aws_access_key_id=settings.WASABI_ACCESS_KEY_ID,
        aws_secret_access_key=settings.WASABI_SECRET_ACCESS_KEY,
        region_name=settings.WASABI_REGION
    )


@dataclass
class StoredObject:
    data: bytes
    content_type: str
    size: int = 0
    etag: Optional[str] = None


class StorageGateway:
    """Thin async facade over boto3; every blocking call runs in a worker thread."""

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_s3_client()
        return self._client

    def _translate(self, error: Exception, bucket: str, key: str) -> Exception:
        if isinstance(error, ClientError):
            code = str(error.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                return ObjectNotFoundError(bucket, key)
        return StorageUnavailableError(f"{bucket}/{key}: {error}", provider_name="s3")

    @retry(
        retry=retry_if_exception_type(StorageUnavailableError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True
    )
    async def get(self, bucket: str, key: str) -> StoredObject:
        """Download an object. Missing objects are not retried."""
        def _get():
            response = self.client.get_object(Bucket=bucket, Key=key)
            return response, response['Body'].read()

        try:
            response, data = await asyncio.to_thread(_get)
        except (BotoCoreError, ClientError) as e:
            error = self._translate(e, bucket, key)
            logger.warning(f"Failed to download {bucket}/{key}: {error}")
            raise error from e

        return StoredObject(
            data=data,
            content_type=response.get('ContentType') or "application/octet-stream",
            size=response.get('ContentLength', len(data)),
            etag=response.get('ETag', '').strip('"') or None
        )

    async def put(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        """Upload bytes and return the key they were stored under."""
        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=content_type
            )
        except (BotoCoreError, ClientError) as e:
            raise self._translate(e, bucket, key) from e

        logger.info(f"Uploaded {len(data)} bytes to {bucket}/{key}")
        return key

    async def list(self, bucket: str, prefix: str = "") -> List[str]:
        """List object keys under a prefix, skipping directory markers."""
        def _list():
            keys = []
            paginator = self.client.get_paginator('list_objects_v2')
            for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
                for obj in page.get('Contents', []):
                    if not obj['Key'].endswith('/'):
                        keys.append(obj['Key'])
            return keys

        try:
            return await asyncio.to_thread(_list)
        except (BotoCoreError, ClientError) as e:
            raise self._translate(e, bucket, prefix) from e

    async def delete(self, bucket: str, key: str) -> None:
        try:
            await asyncio.to_thread(self.client.delete_object, Bucket=bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise self._translate(e, bucket, key) from e
        logger.info(f"Deleted {bucket}/{key}")


storage_gateway = StorageGateway()
