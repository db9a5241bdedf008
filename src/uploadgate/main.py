"""Main application entrypoint for UploadGate."""

import logging
import os
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from uploadgate.api.middleware import HTTPErrorLoggingMiddleware
from uploadgate.api.v1 import routes_health
from uploadgate.api.v1.routes_upload import router as upload_router
from uploadgate.core.config import settings
from uploadgate.core.logging import setup_logging

logger = logging.getLogger(__name__)

LOCAL_FILES_MOUNT = "/files"


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance

    Raises:
        ConfigurationError: If required settings are missing
    """
    # Initialize logging first
    setup_logging()

    # Missing configuration is fatal at startup, never at request time
    settings.validate_required()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
    )
    app.add_middleware(HTTPErrorLoggingMiddleware)

    app.include_router(routes_health.router, tags=["health"])
    app.include_router(upload_router)

    # Serve local uploads so PUBLIC_BASE_URL/<key> resolves in development
    if settings.STORAGE_BACKEND.lower() == "local":
        app.mount(
            LOCAL_FILES_MOUNT,
            StaticFiles(directory=Path(settings.LOCAL_STORAGE_PATH), check_dir=False),
            name="files",
        )

    logger.info(
        "UploadGate configured",
        extra={
            "environment": settings.ENV,
            "storage_backend": settings.STORAGE_BACKEND,
        },
    )
    return app


# Export app instance for ASGI servers
app = create_app()


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8080"))
    uvicorn.run(app, host="0.0.0.0", port=port)
