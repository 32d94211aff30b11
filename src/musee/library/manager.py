"""On-disk museum libraries.

Layout::

    <root>/museum.json
    <root>/Wings/<wing-id>/Exhibits/<bundle>.musee
    <root>/Objects/<2-hex>/<2-hex>/<digest>

Operations are synchronous and hold no long-lived handles.  Manifest
read-modify-write and the backup/restore sequences are serialised per root
with an in-process lock; separate processes must coordinate themselves.
"""

from __future__ import annotations

import io
import logging
import os
import shutil
import tarfile
import tempfile
import threading
import weakref
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional

from ..bundle import Bundle
from ..cas import ContentAddressedStore
from ..config import (
    BUNDLE_EXTENSION,
    EXHIBITS_DIR_NAME,
    FORMAT_VERSION,
    OBJECTS_DIR_NAME,
    WINGS_DIR_NAME,
)
from ..crypto import open_sealed, seal
from ..errors import (
    InvalidArgumentError,
    InvalidDataError,
    MuseeIOError,
    NotFoundError,
    ProcessingFailedError,
)
from ..ids import StableID
from ..utils.jsonio import atomic_write_bytes, current_umask
from . import index as index_io
from .models import LibraryIndex, Wing, validate_wing_id, validate_wings

logger = logging.getLogger(__name__)


class _RootLock:
    """Re-entrant lock for one library root; weak-referenceable."""

    def __init__(self) -> None:
        self._lock = threading.RLock()

    def __enter__(self) -> "_RootLock":
        self._lock.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._lock.release()


# One lock per resolved library root, alive while any holder references it.
_ROOT_LOCKS: "weakref.WeakValueDictionary[str, _RootLock]" = weakref.WeakValueDictionary()
_ROOT_LOCKS_LOCK = threading.Lock()


def _lock_for(root: Path) -> _RootLock:
    key = str(Path(root).resolve())
    with _ROOT_LOCKS_LOCK:
        lock = _ROOT_LOCKS.get(key)
        if lock is None:
            lock = _RootLock()
            _ROOT_LOCKS[key] = lock
        return lock


def _mkdir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise MuseeIOError(f"Cannot create directory {path}: {exc}") from exc


def _normalize_member(info: tarfile.TarInfo) -> tarfile.TarInfo:
    info.uid = info.gid = 0
    info.uname = info.gname = ""
    return info


def _archive_tree(root: Path) -> bytes:
    """Serialise every entry below *root* as an uncompressed tar stream."""

    buffer = io.BytesIO()
    entries = sorted(root.rglob("*"), key=lambda p: p.relative_to(root).as_posix())
    with tarfile.open(fileobj=buffer, mode="w", format=tarfile.PAX_FORMAT) as archive:
        for entry in entries:
            archive.add(
                entry,
                arcname=entry.relative_to(root).as_posix(),
                recursive=False,
                filter=_normalize_member,
            )
    return buffer.getvalue()


class MuseumLibrary:
    """A museum rooted at a directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._lock = _lock_for(self.root)

    def __repr__(self) -> str:
        return f"MuseumLibrary({str(self.root)!r})"

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------
    @property
    def index_path(self) -> Path:
        return index_io.index_path(self.root)

    @property
    def wings_root(self) -> Path:
        return self.root / WINGS_DIR_NAME

    @property
    def objects(self) -> ContentAddressedStore:
        return ContentAddressedStore(self.root, OBJECTS_DIR_NAME)

    def wing_path(self, wing_id: StableID) -> Path:
        validate_wing_id(wing_id)
        return self.wings_root / wing_id.value

    def exhibits_path(self, wing_id: StableID) -> Path:
        return self.wing_path(wing_id) / EXHIBITS_DIR_NAME

    # ------------------------------------------------------------------
    # Index
    # ------------------------------------------------------------------
    def read_index(self) -> LibraryIndex:
        return index_io.read_index(self.root)

    def write_index(self, index: LibraryIndex) -> None:
        index_io.write_index(self.root, index)

    @classmethod
    def create_new(cls, root: Path, wings: Iterable[Wing]) -> "MuseumLibrary":
        """Create the directory layout and the initial manifest at *root*.

        A failure part way through is not rolled back; retry into a fresh
        path.
        """

        wings = tuple(wings)
        validate_wings(wings)
        library = cls(root)
        if library.index_path.exists():
            raise InvalidArgumentError(f"a museum already exists at {library.root}")

        _mkdir(library.root)
        _mkdir(library.wings_root)
        for wing in wings:
            _mkdir(library.exhibits_path(wing.id))

        index = LibraryIndex(
            format_version=FORMAT_VERSION,
            created_at=datetime.now(timezone.utc).replace(microsecond=0),
            wings=wings,
        )
        library.write_index(index)
        logger.info("Created museum at %s with %d wings", library.root, len(wings))
        return library

    def add_wing(self, wing: Wing) -> LibraryIndex:
        """Append *wing* to the manifest and create its directories."""

        with self._lock:
            index = self.read_index()
            if index.find_wing(wing.id) is not None:
                raise InvalidArgumentError(f"duplicate wing id: {wing.id}")
            updated = index.with_wing(wing)
            self.write_index(updated)
            _mkdir(self.exhibits_path(wing.id))
        logger.info("Added wing %s (%s) to %s", wing.id, wing.name, self.root)
        return updated

    # ------------------------------------------------------------------
    # Exhibits
    # ------------------------------------------------------------------
    def install(self, bundle: Bundle, wing_id: StableID) -> Path:
        """Copy *bundle* into the wing's exhibits; duplicates are rejected."""

        if self.read_index().find_wing(wing_id) is None:
            raise NotFoundError(f"wing {wing_id}")
        source = Path(bundle.path)
        if not source.exists():
            raise NotFoundError(f"bundle {source}")

        destination = self.exhibits_path(wing_id) / bundle.name
        if destination.exists():
            raise InvalidArgumentError(f"Exhibit already exists: {destination.name}")
        _mkdir(destination.parent)
        try:
            if source.is_dir():
                shutil.copytree(source, destination)
            else:
                shutil.copy2(source, destination)
        except OSError as exc:
            raise MuseeIOError(f"Cannot install {source} into {destination}: {exc}") from exc
        logger.info("Installed %s into wing %s", bundle.name, wing_id)
        return destination

    def list_exhibits(self, wing_id: StableID) -> List[Path]:
        exhibits = self.exhibits_path(wing_id)
        if not exhibits.is_dir():
            return []
        suffix = f".{BUNDLE_EXTENSION}"
        try:
            entries = [entry for entry in exhibits.iterdir() if entry.suffix == suffix]
        except OSError as exc:
            raise MuseeIOError(f"Cannot list {exhibits}: {exc}") from exc
        return sorted(entries, key=lambda entry: entry.name)

    # ------------------------------------------------------------------
    # Backup / restore
    # ------------------------------------------------------------------
    def backup(self, destination: Path, key: bytes) -> None:
        """Seal the whole library tree into *destination*."""

        destination = Path(destination)
        root = self.root.resolve()
        target = destination.resolve()
        if target == root or root in target.parents:
            raise InvalidArgumentError("backup destination must be outside the museum")
        if not self.root.is_dir():
            raise NotFoundError(f"museum {self.root}")

        with self._lock:
            try:
                plaintext = _archive_tree(self.root)
            except OSError as exc:
                raise MuseeIOError(f"Cannot read museum {self.root}: {exc}") from exc
            sealed = seal(plaintext, key)
            atomic_write_bytes(destination, sealed)
        logger.info("Backed up %s to %s (%d bytes)", self.root, destination, len(sealed))

    @classmethod
    def restore(cls, backup_path: Path, key: bytes, destination_root: Path) -> "MuseumLibrary":
        """Recreate a library at *destination_root* from a sealed backup.

        Authentication happens before anything touches the disk.  The
        plaintext temp file and the unpack directory are removed on every
        exit path; on success the unpacked tree is renamed into place.
        """

        backup_path = Path(backup_path)
        destination_root = Path(destination_root)
        if not hasattr(tarfile, "data_filter"):
            raise ProcessingFailedError("this Python has no safe tar extraction (needs 3.12+)")
        if destination_root.exists():
            raise InvalidArgumentError(f"restore destination already exists: {destination_root}")
        try:
            blob = backup_path.read_bytes()
        except FileNotFoundError as exc:
            raise NotFoundError(f"backup {backup_path}") from exc
        except OSError as exc:
            raise MuseeIOError(f"Cannot read backup {backup_path}: {exc}") from exc

        plaintext = open_sealed(blob, key)

        parent = destination_root.parent
        _mkdir(parent)
        with _lock_for(destination_root):
            tmp_file: Optional[Path] = None
            staging: Optional[Path] = None
            try:
                fd, tmp_name = tempfile.mkstemp(prefix=f".{destination_root.name}.", suffix=".restore", dir=parent)
                tmp_file = Path(tmp_name)
                with os.fdopen(fd, "wb") as handle:
                    handle.write(plaintext)
                    handle.flush()
                    os.fsync(handle.fileno())

                staging = Path(tempfile.mkdtemp(prefix=f".{destination_root.name}.", suffix=".staging", dir=parent))
                with tarfile.open(tmp_file, mode="r") as archive:
                    archive.extractall(staging, filter="data")
                # mkdtemp creates 0700; give the root the mode a new directory would get.
                staging.chmod(0o777 & ~current_umask())
                # rename() silently replaces an empty directory on POSIX.
                if destination_root.exists():
                    raise InvalidArgumentError(f"restore destination already exists: {destination_root}")
                staging.rename(destination_root)
                staging = None
            except tarfile.TarError as exc:
                raise InvalidDataError(f"backup payload is not a museum archive: {exc}") from exc
            except OSError as exc:
                raise MuseeIOError(f"Cannot restore into {destination_root}: {exc}") from exc
            finally:
                if tmp_file is not None:
                    tmp_file.unlink(missing_ok=True)
                if staging is not None:
                    shutil.rmtree(staging, ignore_errors=True)

        logger.info("Restored %s to %s", backup_path, destination_root)
        return cls(destination_root)
