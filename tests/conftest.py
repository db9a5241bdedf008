"""Pytest configuration and shared fixtures."""

import os
import tempfile

# Settings are read once at import time; give the app a runnable configuration
os.environ.setdefault("ENV", "local")
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("PUBLIC_BASE_URL", "https://cdn.example.com")
os.environ.setdefault("LOCAL_STORAGE_PATH", tempfile.mkdtemp(prefix="uploadgate-tests-"))

from typing import Dict, List, Optional, Set

import pytest

from uploadgate.core.exceptions import StorageError
from uploadgate.storage.base import StorageBackend


class InMemoryBackend(StorageBackend):
    """Storage backend double that keeps objects in a dict."""

    def __init__(self, fail_names: Optional[Set[str]] = None):
        self.objects: Dict[str, dict] = {}
        self.put_calls: List[str] = []
        self.deleted: List[str] = []
        self.fail_names = fail_names or set()

    async def put(self, key, data, content_type, metadata):
        self.put_calls.append(key)
        if metadata["originalName"] in self.fail_names:
            raise StorageError(f"simulated failure for {metadata['originalName']}")
        self.objects[key] = {
            "data": data,
            "content_type": content_type,
            "metadata": metadata,
        }

    async def delete(self, key):
        self.deleted.append(key)
        self.objects.pop(key, None)

    def get_backend_name(self):
        return "memory"


@pytest.fixture
def memory_backend():
    """Fresh in-memory storage backend."""
    return InMemoryBackend()
