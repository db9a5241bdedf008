"""Amazon S3 storage backend."""

import asyncio
import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from uploadgate.core.config import settings
from uploadgate.core.exceptions import StorageError
from uploadgate.storage.base import StorageBackend

logger = logging.getLogger(__name__)


class S3StorageBackend(StorageBackend):
    """Amazon S3 storage backend."""

    def __init__(self):
        self._client: Optional[Any] = None

    def _get_client(self) -> Any:
        """Lazy-load and cache the S3 client."""
        if self._client is None:
            if not settings.BUCKET_NAME:
                raise StorageError("BUCKET_NAME not configured")

            self._client = boto3.client(
                "s3",
                region_name=settings.AWS_REGION or None,
                aws_access_key_id=settings.S3_ACCESS_KEY or None,
                aws_secret_access_key=settings.S3_SECRET_ACCESS_KEY or None,
            )

        return self._client

    @staticmethod
    def _encode_metadata(metadata: Dict[str, str]) -> Dict[str, str]:
        # S3 user metadata travels as HTTP headers and must be ASCII
        return {key: quote(value, safe=" ._-:()") for key, value in metadata.items()}

    def _put_object(
        self, key: str, data: bytes, content_type: str, metadata: Dict[str, str]
    ) -> None:
        client = self._get_client()
        try:
            client.put_object(
                Bucket=settings.BUCKET_NAME,
                Key=key,
                Body=data,
                ContentType=content_type,
                Metadata=self._encode_metadata(metadata),
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "Failed to put object to S3",
                extra={"bucket": settings.BUCKET_NAME, "key": key, "error": str(e)},
            )
            raise StorageError(f"Failed to store s3://{settings.BUCKET_NAME}/{key}: {e}") from e

    def _delete_object(self, key: str) -> None:
        client = self._get_client()
        try:
            client.delete_object(Bucket=settings.BUCKET_NAME, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to delete s3://{settings.BUCKET_NAME}/{key}: {e}") from e

    async def put(
        self, key: str, data: bytes, content_type: str, metadata: Dict[str, str]
    ) -> None:
        """Upload object to S3 in a worker thread."""
        await asyncio.to_thread(self._put_object, key, data, content_type, metadata)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete_object, key)

    def get_backend_name(self) -> str:
        return "s3"


# Singleton instance
s3_backend = S3StorageBackend()
