"""
Upload client

Selects local files, validates them against the uploader's policy and sends
them as one batch to the ingest service, tracking progress, cancellation
and results in an explicit session state machine.
"""

from uploadgate.client.cancellation import CancelToken
from uploadgate.client.controller import UploadController
from uploadgate.client.models import PendingFile, Phase, UploaderOptions, UploadSession
from uploadgate.client.transport import (
    HttpUploadTransport,
    UploadCancelledError,
    UploadTransportError,
)

__all__ = [
    "CancelToken",
    "UploadController",
    "PendingFile",
    "Phase",
    "UploaderOptions",
    "UploadSession",
    "HttpUploadTransport",
    "UploadCancelledError",
    "UploadTransportError",
]
