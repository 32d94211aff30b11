"""Museum libraries: wings, exhibits and encrypted backups."""

from .index import read_index, write_index
from .manager import MuseumLibrary
from .models import LibraryIndex, Wing, validate_wings

__all__ = [
    "LibraryIndex",
    "MuseumLibrary",
    "Wing",
    "read_index",
    "validate_wings",
    "write_index",
]
