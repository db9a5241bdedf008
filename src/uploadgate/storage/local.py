"""Local filesystem storage backend."""

import asyncio
import json
from pathlib import Path
from typing import Dict, Optional

from uploadgate.core.config import settings
from uploadgate.core.exceptions import StorageError
from uploadgate.storage.base import StorageBackend

METADATA_SUFFIX = ".metadata.json"


class LocalStorageBackend(StorageBackend):
    """Local filesystem storage backend."""

    def __init__(self, base_path: Optional[Path] = None):
        self.base_path = base_path or Path(settings.LOCAL_STORAGE_PATH)

    def get_target_path(self, key: str) -> Path:
        """Resolve a storage key below the base directory."""
        base = self.base_path.resolve()
        target = (base / key).resolve()
        if base not in target.parents:
            raise StorageError(f"Key escapes storage directory: {key}")
        return target

    def _write(self, key: str, data: bytes, content_type: str, metadata: Dict[str, str]) -> None:
        target_path = self.get_target_path(key)
        try:
            # Create directory if needed
            target_path.parent.mkdir(parents=True, exist_ok=True)
            target_path.write_bytes(data)
            sidecar = target_path.with_name(target_path.name + METADATA_SUFFIX)
            sidecar.write_text(
                json.dumps({"contentType": content_type, **metadata}, ensure_ascii=False),
                encoding="utf-8",
            )
        except OSError as e:
            raise StorageError(f"Failed to write {target_path}: {e}") from e

    def _remove(self, key: str) -> None:
        target_path = self.get_target_path(key)
        try:
            target_path.unlink(missing_ok=True)
            target_path.with_name(target_path.name + METADATA_SUFFIX).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete {target_path}: {e}") from e

    async def put(
        self, key: str, data: bytes, content_type: str, metadata: Dict[str, str]
    ) -> None:
        """Write file to local filesystem with a metadata sidecar."""
        await asyncio.to_thread(self._write, key, data, content_type, metadata)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._remove, key)

    def get_backend_name(self) -> str:
        return "local"


# Singleton instance
local_backend = LocalStorageBackend()
