"""File validation rules shared by the client controller and the ingest service.

The client runs these checks as a convenience before anything goes over the
network. The ingest service runs them again against its own fixed policy and
only trusts the size of the bytes it actually received.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

WILDCARD_ACCEPT = "*/*"


@dataclass(frozen=True)
class ValidationPolicy:
    """Size, count and type limits for one uploader or for the server.

    ``allowed_mime_types`` of ``None`` accepts every type. Entries may be
    exact types (``image/png``) or family patterns (``image/*``).
    """

    max_file_size_bytes: int
    max_file_count: int
    allowed_mime_types: Optional[frozenset[str]] = None

    @property
    def accepts_any_type(self) -> bool:
        return self.allowed_mime_types is None

    @property
    def max_file_size_mb(self) -> str:
        return format_megabytes(self.max_file_size_bytes)


def format_megabytes(size_bytes: int) -> str:
    """Render a byte limit as megabytes without a trailing ``.0``."""
    megabytes = size_bytes / 1024 / 1024
    return f"{megabytes:g}"


def parse_accept(accept: Optional[str]) -> Optional[frozenset[str]]:
    """Turn an accept hint such as ``"image/*,application/pdf"`` into an allow set.

    Returns None (accept everything) for an empty hint or one containing ``*/*``.
    """
    if not accept:
        return None
    entries = frozenset(part.strip().lower() for part in accept.split(",") if part.strip())
    if not entries or WILDCARD_ACCEPT in entries:
        return None
    return entries


def mime_type_allowed(mime_type: str, allowed: Optional[Iterable[str]]) -> bool:
    """Check a declared MIME type against exact entries and ``family/*`` patterns."""
    if allowed is None:
        return True
    mime_type = mime_type.lower()
    family = mime_type.split("/", 1)[0]
    for entry in allowed:
        entry = entry.lower()
        if entry == mime_type:
            return True
        if entry.endswith("/*") and entry[:-2] == family:
            return True
    return False


def validate_file(
    name: str,
    size_bytes: int,
    mime_type: Optional[str],
    policy: ValidationPolicy,
    *,
    reject_empty: bool = True,
    require_type: bool = False,
) -> Optional[str]:
    """Validate one file, returning the first violated rule or None.

    Args:
        name: File name as selected or submitted
        size_bytes: Size of the file content
        mime_type: Declared MIME type, possibly empty
        policy: Limits to enforce
        reject_empty: Reject zero-byte files
        require_type: Reject files without any declared type (client rule
            applied when its accept hint is not a wildcard)

    Returns:
        Human readable rejection reason naming the file, or None if valid
    """
    if size_bytes > policy.max_file_size_bytes:
        return f'File "{name}" exceeds maximum size of {policy.max_file_size_mb}MB'

    if reject_empty and size_bytes == 0:
        return f'File "{name}" is empty'

    if require_type and not mime_type:
        return f'File "{name}" has no type information'

    if mime_type and not mime_type_allowed(mime_type, policy.allowed_mime_types):
        return f'File "{name}" type {mime_type} is not allowed'

    return None
