"""Abstract storage backend interface."""

from abc import ABC, abstractmethod
from typing import Dict


class StorageBackend(ABC):
    """Abstract base class for storage backends."""

    @abstractmethod
    async def put(
        self, key: str, data: bytes, content_type: str, metadata: Dict[str, str]
    ) -> None:
        """Store an object under the given key.

        Args:
            key: Storage key (path-like, unique per object)
            data: Object content
            content_type: MIME type
            metadata: User metadata (originalName, uploadDate)

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove an object. Used to undo stores after a partial batch failure.

        Raises:
            StorageError: If the delete fails
        """
        pass

    @abstractmethod
    def get_backend_name(self) -> str:
        """Return backend identifier."""
        pass
