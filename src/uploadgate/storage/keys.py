"""Storage key generation from untrusted file names."""

import posixpath
import re
from uuid import uuid4

KEY_PREFIX = "uploads/"

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")
_UNDERSCORE_RUNS = re.compile(r"_{2,}")


def split_extension(raw_name: str) -> tuple[str, str]:
    """Split a file name into base name and extension (without the dot).

    Directory components are discarded first. The extension is whatever
    follows the last dot, kept verbatim; dot-files such as ``.env`` have none.
    """
    name = raw_name.replace("\\", "/").rsplit("/", 1)[-1]
    base, ext = posixpath.splitext(name)
    return base, ext[1:]


def sanitize_filename(raw_name: str) -> str:
    """Derive a URL-safe, lower-case base name from an untrusted file name."""
    base, _ = split_extension(raw_name)
    safe = _UNSAFE_CHARS.sub("_", base)
    safe = _UNDERSCORE_RUNS.sub("_", safe)
    return safe.lower() or "file"


def generate_storage_key(raw_name: str) -> str:
    """Build ``uploads/<safe-base>_<uuid>.<ext>`` for a file name.

    The random token makes keys unique without checking the backend.
    """
    _, ext = split_extension(raw_name)
    key = f"{KEY_PREFIX}{sanitize_filename(raw_name)}_{uuid4()}"
    if ext:
        key = f"{key}.{ext}"
    return key


def build_public_url(base_url: str, key: str) -> str:
    return f"{base_url.rstrip('/')}/{key}"
