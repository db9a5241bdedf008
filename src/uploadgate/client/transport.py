"""HTTP transport used by the upload controller."""

import asyncio
import logging
from typing import List, Optional, Sequence

import httpx
from pydantic import ValidationError

from uploadgate.client.cancellation import CancelToken
from uploadgate.client.models import PendingFile
from uploadgate.core.exceptions import UploadGateError
from uploadgate.models.upload import UploadSuccessResponse, UploadedFileRecord

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "/api/upload"
GENERIC_FAILURE = "Upload failed"


class UploadTransportError(UploadGateError):
    """Exception raised when the request fails or the server rejects the batch."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UploadCancelledError(UploadGateError):
    """Exception raised when the request was aborted through its cancel token."""
    pass


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"Upload failed with status {response.status_code}"


class HttpUploadTransport:
    """Sends one batch as a multipart POST with repeated ``files`` parts."""

    def __init__(
        self,
        base_url: str,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float = 300,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the transport.

        Args:
            base_url: Ingest service base URL
            endpoint: Upload path on the service
            timeout: Request timeout in seconds
            client: Pre-built client (tests pass one with a mock transport)
        """
        self.url = f"{base_url.rstrip('/')}{endpoint}"
        self.timeout = timeout
        self._client = client

    async def _post(self, files: Sequence[PendingFile]) -> httpx.Response:
        parts = [
            ("files", (f.name, f.content, f.mime_type or "application/octet-stream"))
            for f in files
        ]
        if self._client is not None:
            return await self._client.post(self.url, files=parts)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.url, files=parts)

    async def send(
        self, files: Sequence[PendingFile], token: CancelToken
    ) -> List[UploadedFileRecord]:
        """Upload a batch, aborting as soon as the token is cancelled.

        Returns:
            Stored file records in submission order

        Raises:
            UploadCancelledError: If the token fired before a response arrived
            UploadTransportError: On network failure or a non-success response
        """
        if token.cancelled:
            raise UploadCancelledError("Upload cancelled")

        request_task = asyncio.ensure_future(self._post(files))
        cancel_task = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait(
                {request_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            request_task.cancel()
            raise
        finally:
            cancel_task.cancel()

        if not request_task.done():
            request_task.cancel()
            try:
                await request_task
            except (asyncio.CancelledError, httpx.HTTPError):
                pass
            logger.info("Upload request aborted", extra={"url": self.url, "file_count": len(files)})
            raise UploadCancelledError("Upload cancelled")

        try:
            response = request_task.result()
        except httpx.HTTPError as e:
            logger.warning(
                "Upload request failed",
                extra={"url": self.url, "error": str(e), "error_type": type(e).__name__},
            )
            raise UploadTransportError(GENERIC_FAILURE) from e

        if response.is_error:
            raise UploadTransportError(_error_message(response), status_code=response.status_code)

        try:
            body = UploadSuccessResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise UploadTransportError(
                _error_message(response), status_code=response.status_code
            ) from e

        logger.info(
            "Upload request succeeded",
            extra={"url": self.url, "file_count": len(body.files), "status_code": response.status_code},
        )
        return list(body.files)
