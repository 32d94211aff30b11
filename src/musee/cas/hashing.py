"""SHA-256 digests of byte blobs and files."""

from __future__ import annotations

import hashlib
import string
from pathlib import Path

from ..errors import MuseeIOError

_CHUNK_SIZE = 1024 * 1024
_HEX_DIGITS = frozenset(string.hexdigits)


def sha256_hex(data: bytes) -> str:
    """Return the lowercase hex SHA-256 of *data*."""

    return hashlib.sha256(data).hexdigest()


def sha256_file(path: Path) -> str:
    """Return the lowercase hex SHA-256 of the file at *path*."""

    digest = hashlib.sha256()
    try:
        with path.open("rb") as handle:
            for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
                digest.update(chunk)
    except OSError as exc:
        raise MuseeIOError(f"Cannot read {path}: {exc}") from exc
    return digest.hexdigest()


def is_hex_digest(value: str) -> bool:
    return bool(value) and all(ch in _HEX_DIGITS for ch in value)
