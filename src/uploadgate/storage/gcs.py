"""Google Cloud Storage backend."""

import asyncio
import logging
from typing import Dict, Optional

from google.cloud import storage
from google.cloud.exceptions import GoogleCloudError, NotFound

from uploadgate.core.config import settings
from uploadgate.core.exceptions import StorageError
from uploadgate.storage.base import StorageBackend

logger = logging.getLogger(__name__)


class GCSStorageBackend(StorageBackend):
    """Google Cloud Storage backend."""

    def __init__(self):
        self._client: Optional[storage.Client] = None
        self._bucket: Optional[storage.Bucket] = None

    def _get_bucket(self) -> storage.Bucket:
        """Lazy-load and cache GCS bucket."""
        if self._bucket is None:
            if not settings.GCS_BUCKET_NAME:
                raise StorageError("GCS_BUCKET_NAME not configured")

            self._client = storage.Client(project=settings.GCP_PROJECT_ID or None)
            self._bucket = self._client.bucket(settings.GCS_BUCKET_NAME)

        return self._bucket

    def _upload(
        self, key: str, data: bytes, content_type: str, metadata: Dict[str, str]
    ) -> None:
        bucket = self._get_bucket()
        blob = bucket.blob(key)
        blob.metadata = metadata
        try:
            blob.upload_from_string(data, content_type=content_type)
        except GoogleCloudError as e:
            logger.error(
                "Failed to upload object to GCS",
                extra={"bucket": settings.GCS_BUCKET_NAME, "key": key, "error": str(e)},
            )
            raise StorageError(f"Failed to store gs://{settings.GCS_BUCKET_NAME}/{key}: {e}") from e

    def _delete(self, key: str) -> None:
        bucket = self._get_bucket()
        try:
            bucket.blob(key).delete()
        except NotFound:
            logger.warning("Object already absent in GCS", extra={"key": key})
        except GoogleCloudError as e:
            raise StorageError(f"Failed to delete gs://{settings.GCS_BUCKET_NAME}/{key}: {e}") from e

    async def put(
        self, key: str, data: bytes, content_type: str, metadata: Dict[str, str]
    ) -> None:
        """Upload object to GCS in a worker thread."""
        await asyncio.to_thread(self._upload, key, data, content_type, metadata)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)

    def get_backend_name(self) -> str:
        return "gcs"


# Singleton instance
gcs_backend = GCSStorageBackend()
