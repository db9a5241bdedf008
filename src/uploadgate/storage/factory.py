"""Storage backend selection."""

from uploadgate.core.config import settings
from uploadgate.storage.base import StorageBackend


def get_storage_backend() -> StorageBackend:
    """Return the backend selected by STORAGE_BACKEND.

    Backends are imported lazily so that cloud SDKs are only loaded when used.

    Raises:
        ValueError: If STORAGE_BACKEND names an unknown backend
    """
    backend = settings.STORAGE_BACKEND.lower()

    if backend == "s3":
        from uploadgate.storage.s3 import s3_backend

        return s3_backend
    if backend == "gcs":
        from uploadgate.storage.gcs import gcs_backend

        return gcs_backend
    if backend == "local":
        from uploadgate.storage.local import local_backend

        return local_backend

    raise ValueError(f"Unknown storage backend: {settings.STORAGE_BACKEND}")
