"""Bundles: self-contained packages installed into a wing as one unit.

The library never looks inside a bundle; it only needs a location and a name,
which is all the :class:`Bundle` protocol exposes.  :class:`MuseeBundle` is the
on-disk ``<name>.musee`` directory format used by the command-line tools.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Protocol

from .cas import ContentAddressedStore, sha256_file
from .config import (
    BUNDLE_MANIFEST_FILENAME,
    BUNDLE_METADATA_DIR_NAME,
    FORMAT_VERSION,
    OBJECTS_DIR_NAME,
)
from .errors import InvalidDataError, InvalidFormatError, MuseeIOError, NotFoundError
from .utils.jsonio import read_json, write_json

logger = logging.getLogger(__name__)


class Bundle(Protocol):
    @property
    def path(self) -> Path: ...

    @property
    def name(self) -> str: ...


class MuseeBundle:
    """A ``.musee`` directory holding a manifest and its own object store."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    def __repr__(self) -> str:
        return f"MuseeBundle({str(self._path)!r})"

    @property
    def path(self) -> Path:
        return self._path

    @property
    def name(self) -> str:
        return self._path.name

    @property
    def manifest_path(self) -> Path:
        return self._path / BUNDLE_MANIFEST_FILENAME

    @property
    def objects(self) -> ContentAddressedStore:
        return ContentAddressedStore(self._path, OBJECTS_DIR_NAME)

    def read_manifest(self) -> Dict[str, Any]:
        return read_json(self.manifest_path)

    def validate(self) -> None:
        """Check the format version and that every asset's object is present."""

        manifest = self.read_manifest()
        info = manifest.get("bundle")
        version = info.get("formatVersion") if isinstance(info, dict) else None
        if version != FORMAT_VERSION:
            raise InvalidFormatError(f"Unsupported format version {version}")

        assets = manifest.get("assets", [])
        if not isinstance(assets, list):
            raise InvalidFormatError("'assets' must be a list")
        store = self.objects
        for asset in assets:
            digest = asset.get("sha256") if isinstance(asset, dict) else None
            if not isinstance(digest, str):
                raise InvalidFormatError(f"asset entry without sha256: {asset!r}")
            if not store.exists(digest):
                raise NotFoundError(f"Missing object for asset sha256={digest}")

    @classmethod
    def create(
        cls,
        path: Path,
        manifest: Dict[str, Any],
        media_files: Mapping[str, Path],
    ) -> "MuseeBundle":
        """Lay out a new bundle, store *media_files* by digest and validate it.

        Every file is checked against its digest before anything is written.
        """

        for digest, file_path in media_files.items():
            if sha256_file(Path(file_path)) != digest.lower():
                raise InvalidDataError(f"{file_path} does not hash to {digest}")

        bundle = cls(path)
        try:
            (bundle.path / OBJECTS_DIR_NAME).mkdir(parents=True, exist_ok=True)
            (bundle.path / BUNDLE_METADATA_DIR_NAME).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise MuseeIOError(f"Cannot create bundle at {path}: {exc}") from exc
        write_json(bundle.manifest_path, manifest)

        store = bundle.objects
        for file_path in media_files.values():
            store.ingest(Path(file_path))

        bundle.validate()
        logger.info("Created bundle %s with %d objects", bundle.name, len(media_files))
        return bundle
