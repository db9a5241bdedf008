"""Upload API routes."""

import logging
from typing import List

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from uploadgate.core.config import settings
from uploadgate.core.exceptions import UploadValidationError
from uploadgate.models.upload import ErrorResponse, UploadSuccessResponse
from uploadgate.services.ingest import FileHeader, IncomingFile, IngestService
from uploadgate.storage.factory import get_storage_backend

router = APIRouter(prefix="/api", tags=["upload"])
logger = logging.getLogger(__name__)

FILES_FIELD = "files"
UNNAMED_FILE = "unnamed"


def get_ingest_service() -> IngestService:
    """Build the ingest service for the configured backend."""
    return IngestService(
        backend=get_storage_backend(),
        public_base_url=settings.PUBLIC_BASE_URL,
        policy=settings.server_policy,
        compensate=settings.COMPENSATE_PARTIAL_UPLOADS,
    )


def _error(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def _read_files(request: Request, service: IngestService) -> List[IncomingFile]:
    """Read every ``files`` part of a multipart body into memory.

    The batch is validated against the received part sizes first, so an
    oversized part is rejected while it is still spooled by the form parser.
    """
    form = await request.form()
    try:
        uploads = form.getlist(FILES_FIELD)
        for item in uploads:
            if not isinstance(item, UploadFile):
                raise UploadValidationError(f"Field '{FILES_FIELD}' must contain files")

        service.validate_batch(
            [
                FileHeader(
                    file_name=item.filename or UNNAMED_FILE,
                    content_type=item.content_type or "",
                    size_bytes=item.size or 0,
                )
                for item in uploads
            ]
        )

        incoming = []
        for item in uploads:
            incoming.append(
                IncomingFile(
                    file_name=item.filename or UNNAMED_FILE,
                    content_type=item.content_type or "",
                    data=await item.read(),
                )
            )
        return incoming
    finally:
        await form.close()


@router.post(
    "/upload",
    response_model=UploadSuccessResponse,
    responses={
        400: {"model": ErrorResponse},
        405: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def upload_files(
    request: Request, service: IngestService = Depends(get_ingest_service)
) -> JSONResponse:
    """Upload a batch of files; every file is stored or none is reported."""
    try:
        try:
            files = await _read_files(request, service)
        except UploadValidationError:
            raise
        except Exception as e:
            logger.warning(f"Malformed upload body: {e}")
            raise UploadValidationError("Invalid multipart request body") from e

        records = await service.ingest(files)

        logger.info(
            f"Upload completed: files={len(records)}, "
            f"backend={service.backend.get_backend_name()}"
        )

        body = UploadSuccessResponse(files=records)
        return JSONResponse(status_code=status.HTTP_200_OK, content=body.model_dump(by_alias=True))

    except UploadValidationError as e:
        logger.warning(f"Upload rejected: {e}")
        return _error(status.HTTP_400_BAD_REQUEST, str(e))
    except Exception as e:
        logger.error(f"Upload error: {e}", exc_info=True)
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Upload failed",
            details=str(e) if settings.is_development else None,
        )


@router.api_route(
    "/upload",
    methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"],
    include_in_schema=False,
)
async def upload_method_not_allowed() -> JSONResponse:
    """Reject every method other than POST."""
    return _error(status.HTTP_405_METHOD_NOT_ALLOWED, "Method not allowed")
