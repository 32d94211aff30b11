"""Layout names and defaults for museum libraries."""

from __future__ import annotations

FORMAT_VERSION = "1.0"

INDEX_FILENAME = "museum.json"
WINGS_DIR_NAME = "Wings"
EXHIBITS_DIR_NAME = "Exhibits"
OBJECTS_DIR_NAME = "Objects"

BUNDLE_EXTENSION = "musee"
BUNDLE_MANIFEST_FILENAME = "manifest.json"
BUNDLE_METADATA_DIR_NAME = "Metadata"

# A digest shorter than this cannot be sharded into two 2-character levels.
DIGEST_MIN_LENGTH = 4

# (id, name, description) used by ``musee init`` when no --wing is given.
DEFAULT_WINGS = (
    ("fitness", "Fitness", "Fitness models and athletes"),
    ("singers", "Singers", "Singers and performers"),
    ("actors", "Actors", "Actors and actresses"),
)

BACKUP_MAGIC = b"MUSB"
BACKUP_FORMAT_VERSION = 1
BACKUP_KEY_SIZE = 32
BACKUP_NONCE_SIZE = 12

KEY_FILE_ENV = "MUSEE_KEY_FILE"
