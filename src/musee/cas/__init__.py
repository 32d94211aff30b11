"""Content-addressed object storage."""

from .hashing import is_hex_digest, sha256_file, sha256_hex
from .store import ContentAddressedStore, ContentReference

__all__ = [
    "ContentAddressedStore",
    "ContentReference",
    "is_hex_digest",
    "sha256_file",
    "sha256_hex",
]
