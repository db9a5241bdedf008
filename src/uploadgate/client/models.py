"""Client-side upload session models."""

import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple

from uploadgate.client.cancellation import CancelToken
from uploadgate.models.upload import UploadedFileRecord
from uploadgate.validation import ValidationPolicy, parse_accept


@dataclass(frozen=True)
class PendingFile:
    """A selected local file that has not been uploaded yet."""

    name: str
    size_bytes: int
    mime_type: str
    content: bytes = field(repr=False)

    @classmethod
    def from_bytes(cls, name: str, content: bytes, mime_type: str = "") -> "PendingFile":
        return cls(name=name, size_bytes=len(content), mime_type=mime_type, content=content)

    @classmethod
    def from_path(cls, path: Path, mime_type: Optional[str] = None) -> "PendingFile":
        """Read a file from disk, guessing its MIME type from the extension."""
        path = Path(path)
        if mime_type is None:
            mime_type = mimetypes.guess_type(path.name)[0] or ""
        return cls.from_bytes(path.name, path.read_bytes(), mime_type)


@dataclass(frozen=True)
class UploaderOptions:
    """Per-uploader configuration."""

    multiple: bool = False
    accept: str = "image/*"
    max_size_mb: float = 20
    max_files: int = 10

    @property
    def accepts_any_type(self) -> bool:
        return parse_accept(self.accept) is None

    @property
    def policy(self) -> ValidationPolicy:
        return ValidationPolicy(
            max_file_size_bytes=int(self.max_size_mb * 1024 * 1024),
            max_file_count=self.max_files,
            allowed_mime_types=parse_accept(self.accept),
        )


class Phase(str, Enum):
    """Upload session phases."""

    IDLE = "idle"  # Nothing selected
    FILES_SELECTED = "files_selected"
    UPLOADING = "uploading"  # Request in flight
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_PHASES = frozenset([Phase.COMPLETED, Phase.FAILED, Phase.CANCELLED])


@dataclass(frozen=True)
class UploadSession:
    """Immutable snapshot of one uploader's state."""

    pending: Tuple[PendingFile, ...] = ()
    phase: Phase = Phase.IDLE
    progress_percent: float = 0.0
    results: Tuple[UploadedFileRecord, ...] = ()
    last_error: Optional[str] = None
    cancel_token: Optional[CancelToken] = None

    @property
    def is_uploading(self) -> bool:
        return self.phase == Phase.UPLOADING

    @property
    def pending_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.pending)
