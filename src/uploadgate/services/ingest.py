"""Server-side ingest of multi-file upload batches."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Sequence, Union

from uploadgate.core.exceptions import StorageError, UploadValidationError
from uploadgate.models.upload import UploadedFileRecord
from uploadgate.storage.base import StorageBackend
from uploadgate.storage.keys import build_public_url, generate_storage_key
from uploadgate.validation import ValidationPolicy, validate_file

logger = logging.getLogger(__name__)

FALLBACK_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class FileHeader:
    """Name, type and received size of a part whose content is not loaded yet."""

    file_name: str
    content_type: str
    size_bytes: int


@dataclass(frozen=True)
class IncomingFile:
    """One file as delivered by the transport."""

    file_name: str
    content_type: str
    data: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class IngestService:
    """Validates a batch and stores every file concurrently, all or nothing."""

    def __init__(
        self,
        backend: StorageBackend,
        public_base_url: str,
        policy: ValidationPolicy,
        compensate: bool = True,
    ):
        """Initialize the service.

        Args:
            backend: Storage capability receiving the objects
            public_base_url: Prefix for the public URL of each key
            policy: Fixed server validation policy
            compensate: Delete already stored objects when another store in
                the same batch fails
        """
        self.backend = backend
        self.public_base_url = public_base_url
        self.policy = policy
        self.compensate = compensate

    def validate_batch(self, files: Sequence[Union[FileHeader, IncomingFile]]) -> None:
        """Reject the whole batch on the first policy violation.

        Accepts headers so the route can reject oversized parts before their
        content is read.

        Raises:
            UploadValidationError: If the batch is empty, too large or any
                file is invalid
        """
        if not files:
            raise UploadValidationError("No files provided")

        if len(files) > self.policy.max_file_count:
            raise UploadValidationError(
                f"Too many files. Maximum {self.policy.max_file_count} files allowed"
            )

        for incoming in files:
            reason = validate_file(
                incoming.file_name,
                incoming.size_bytes,
                incoming.content_type,
                self.policy,
            )
            if reason:
                raise UploadValidationError(reason)

    async def _store(self, incoming: IncomingFile) -> UploadedFileRecord:
        key = generate_storage_key(incoming.file_name)
        metadata = {
            "originalName": incoming.file_name,
            "uploadDate": datetime.now(timezone.utc).isoformat(),
        }
        await self.backend.put(
            key,
            incoming.data,
            incoming.content_type or FALLBACK_CONTENT_TYPE,
            metadata,
        )
        return UploadedFileRecord(
            original_name=incoming.file_name,
            storage_key=key,
            public_url=build_public_url(self.public_base_url, key),
            size_bytes=incoming.size_bytes,
            mime_type=incoming.content_type,
        )

    async def _rollback(self, records: List[UploadedFileRecord]) -> None:
        for record in records:
            try:
                await self.backend.delete(record.storage_key)
            except Exception as e:
                logger.warning(
                    "Failed to remove object after partial batch failure",
                    extra={"key": record.storage_key, "error": str(e)},
                )

    async def ingest(self, files: Sequence[IncomingFile]) -> List[UploadedFileRecord]:
        """Validate and store a batch.

        Args:
            files: Files in submission order

        Returns:
            One record per file, in submission order

        Raises:
            UploadValidationError: If validation fails (nothing is stored)
            StorageError: If any store fails
        """
        self.validate_batch(files)

        results = await asyncio.gather(
            *(self._store(incoming) for incoming in files),
            return_exceptions=True,
        )

        failures = [
            (incoming, result)
            for incoming, result in zip(files, results)
            if isinstance(result, BaseException)
        ]
        if failures:
            for incoming, error in failures:
                logger.error(
                    "Failed to store file",
                    extra={
                        "file_name": incoming.file_name,
                        "backend": self.backend.get_backend_name(),
                        "error": str(error),
                    },
                    exc_info=(type(error), error, error.__traceback__),
                )

            stored = [r for r in results if isinstance(r, UploadedFileRecord)]
            if self.compensate and stored:
                await self._rollback(stored)

            first_error = failures[0][1]
            raise StorageError(
                f"{len(failures)} of {len(files)} file(s) failed to store: {first_error}"
            ) from first_error

        logger.info(
            "Upload batch stored",
            extra={
                "file_count": len(files),
                "total_bytes": sum(f.size_bytes for f in files),
                "backend": self.backend.get_backend_name(),
            },
        )
        return list(results)
