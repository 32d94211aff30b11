"""Write-once object store keyed by content digest.

Objects live at ``<root>/<objects>/<d[0:2]>/<d[2:4]>/<d>``.  The two-level
fan-out keeps every directory small without needing a separate index, and
the digest doubles as identity, deduplication key and integrity reference.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator

from ..config import DIGEST_MIN_LENGTH, OBJECTS_DIR_NAME
from ..errors import InvalidArgumentError, InvalidFormatError, MuseeIOError, NotFoundError
from ..utils.jsonio import atomic_write_bytes
from .hashing import is_hex_digest, sha256_hex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentReference:
    """Where a stored blob lives, relative to the store root."""

    digest: str
    relative_path: str
    size_bytes: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "digest": self.digest,
            "relativePath": self.relative_path,
            "sizeBytes": self.size_bytes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentReference":
        try:
            return cls(
                digest=str(data["digest"]),
                relative_path=str(data["relativePath"]),
                size_bytes=int(data["sizeBytes"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidFormatError(f"Malformed content reference: {data!r}") from exc


class ContentAddressedStore:
    """Deduplicating blob store rooted at a directory."""

    def __init__(self, root: Path, objects_dir_name: str = OBJECTS_DIR_NAME) -> None:
        self.root = Path(root)
        self.objects_dir_name = objects_dir_name

    @property
    def objects_root(self) -> Path:
        return self.root / self.objects_dir_name

    def locate(self, digest: str) -> Path:
        """Return the path a blob with *digest* is stored at.

        Hex digits are case-insensitive; the path always uses lowercase so
        one content never maps to two objects.
        """

        if len(digest) < DIGEST_MIN_LENGTH:
            raise InvalidArgumentError(f"digest too short: {digest!r}")
        if not is_hex_digest(digest):
            raise InvalidArgumentError(f"digest is not hexadecimal: {digest!r}")
        digest = digest.lower()
        return self.objects_root / digest[0:2] / digest[2:4] / digest

    def exists(self, digest: str) -> bool:
        try:
            path = self.locate(digest)
        except InvalidArgumentError:
            return False
        return path.is_file()

    def store(self, data: bytes, digest: str) -> ContentReference:
        """Persist *data* under *digest*; the first write wins."""

        path = self.locate(digest)
        digest = path.name
        if path.is_file():
            logger.debug("Object %s already present", digest)
        else:
            atomic_write_bytes(path, data)
            logger.debug("Stored object %s (%d bytes)", digest, len(data))
        return ContentReference(
            digest=digest,
            relative_path=path.relative_to(self.root).as_posix(),
            size_bytes=len(data),
        )

    def ingest(self, file_path: Path) -> ContentReference:
        """Read *file_path* fully, hash it and store it."""

        try:
            data = Path(file_path).read_bytes()
        except OSError as exc:
            raise MuseeIOError(f"Cannot read {file_path}: {exc}") from exc
        return self.store(data, sha256_hex(data))

    def load(self, digest: str) -> bytes:
        path = self.locate(digest)
        if not path.is_file():
            raise NotFoundError(f"object {digest}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise MuseeIOError(f"Cannot read object {digest}: {exc}") from exc

    def iter_digests(self) -> Iterator[str]:
        """Yield the digest of every stored object in sorted order."""

        if not self.objects_root.is_dir():
            return
        for prefix in sorted(p for p in self.objects_root.iterdir() if p.is_dir()):
            for subprefix in sorted(p for p in prefix.iterdir() if p.is_dir()):
                for entry in sorted(subprefix.iterdir()):
                    # Skip in-flight temporary files from atomic writes.
                    if entry.is_file() and not entry.name.startswith("."):
                        yield entry.name
