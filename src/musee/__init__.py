"""Musée: content-addressed media storage and museum libraries."""

from .cas import ContentAddressedStore, ContentReference, sha256_hex
from .errors import MuseeError
from .ids import StableID
from .library import LibraryIndex, MuseumLibrary, Wing

__all__ = [
    "ContentAddressedStore",
    "ContentReference",
    "LibraryIndex",
    "MuseeError",
    "MuseumLibrary",
    "StableID",
    "Wing",
    "sha256_hex",
]

__version__ = "0.1.0"
