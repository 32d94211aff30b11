"""Helpers for JSON and binary output with atomic writes."""

from __future__ import annotations

import json
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Optional

from ..errors import InvalidFormatError, MuseeIOError, NotFoundError


def read_json(path: Path) -> dict[str, Any]:
    """Read a JSON object from *path*."""

    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError as exc:
        raise NotFoundError(f"JSON file not found: {path}") from exc
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidFormatError(f"Invalid JSON data in {path}") from exc
    except OSError as exc:
        raise MuseeIOError(f"Cannot read {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidFormatError(f"Expected a JSON object in {path}")
    return data


_UMASK_LOCK = threading.Lock()


def current_umask() -> int:
    # os.umask can only be read by setting it, so swap it back under a lock.
    with _UMASK_LOCK:
        mask = os.umask(0o022)
        os.umask(mask)
    return mask


def _target_mode(path: Path) -> int:
    """Mode for a file about to replace *path*: keep the old one, else the umask default."""

    try:
        return path.stat().st_mode & 0o7777
    except FileNotFoundError:
        return 0o666 & ~current_umask()


def _replace_with_retry(tmp_path: Path, path: Path) -> None:
    # ``Path.replace`` can intermittently fail on Windows when another process
    # briefly holds either file open (antivirus, indexing services).
    for attempt in range(5):
        try:
            tmp_path.replace(path)
            return
        except PermissionError:
            # Never unlink the destination; on repeated failure the old data stays.
            if attempt == 4:
                raise
            time.sleep(0.05 * (attempt + 1))


def atomic_write_bytes(path: Path, data: bytes, *, mode: Optional[int] = None) -> None:
    """Atomically write *data* into *path*.

    The payload goes to a uniquely named sibling first, so concurrent writers
    of the same target never share a temporary file and readers never see a
    partial file.  The new file keeps the mode of the one it replaces (or
    the umask default) unless *mode* is given.
    """

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    except OSError as exc:
        raise MuseeIOError(f"Cannot prepare {path}: {exc}") from exc
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            os.chmod(tmp_path, _target_mode(path) if mode is None else mode)
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        _replace_with_retry(tmp_path, path)
    except OSError as exc:
        tmp_path.unlink(missing_ok=True)
        raise MuseeIOError(f"Cannot write {path}: {exc}") from exc


def atomic_write_text(path: Path, data: str, *, mode: Optional[int] = None) -> None:
    """Atomically write UTF-8 *data* into *path*."""

    atomic_write_bytes(path, data.encode("utf-8"), mode=mode)


def write_json(path: Path, data: dict[str, Any]) -> None:
    """Write *data* into *path* atomically with sorted keys."""

    payload = json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True)
    atomic_write_text(path, payload + "\n")
