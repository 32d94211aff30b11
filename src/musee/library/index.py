"""Reading and writing ``museum.json``."""

from __future__ import annotations

from pathlib import Path

from ..config import INDEX_FILENAME
from ..utils.jsonio import read_json, write_json
from .models import LibraryIndex, validate_wings


def index_path(root: Path) -> Path:
    return Path(root) / INDEX_FILENAME


def read_index(root: Path) -> LibraryIndex:
    """Load the manifest of the library at *root*.

    Raises ``NotFoundError`` when the manifest is missing and
    ``InvalidFormatError`` when it cannot be decoded.
    """

    return LibraryIndex.from_dict(read_json(index_path(root)))


def write_index(root: Path, index: LibraryIndex) -> None:
    """Replace the manifest at *root* with *index*.

    There is no merge: callers must read, modify and write back.  Wing ids are
    validated first so a manifest with duplicate ids is never persisted.
    """

    validate_wings(index.wings)
    write_json(index_path(root), index.to_dict())
