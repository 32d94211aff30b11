"""Authenticated-encryption container for library backups.

Binary layout (big-endian)::

    magic      : 4 bytes  -> b"MUSB"
    version    : 1 byte   -> 0x01
    nonce      : 12 bytes
    ciphertext : remaining bytes (AES-256-GCM, 16-byte tag appended)

The 5-byte header is bound to the ciphertext as associated data, so a
rewritten header fails authentication just like a flipped ciphertext bit.
"""

from __future__ import annotations

import base64
import binascii
import secrets
import struct
from pathlib import Path

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..config import BACKUP_FORMAT_VERSION, BACKUP_KEY_SIZE, BACKUP_MAGIC, BACKUP_NONCE_SIZE
from ..errors import (
    InvalidArgumentError,
    InvalidFormatError,
    MuseeIOError,
    NotFoundError,
    ProcessingFailedError,
)
from ..utils.jsonio import atomic_write_text

_HEADER = struct.Struct(">4sB")
HEADER_SIZE = _HEADER.size
TAG_SIZE = 16


def generate_key() -> bytes:
    return secrets.token_bytes(BACKUP_KEY_SIZE)


def _check_key(key: bytes) -> None:
    if len(key) != BACKUP_KEY_SIZE:
        raise InvalidArgumentError(f"backup key must be {BACKUP_KEY_SIZE} bytes, got {len(key)}")


def save_key(path: Path, key: bytes) -> None:
    """Write *key* as base64 text readable only by the owner."""

    _check_key(key)
    atomic_write_text(path, base64.b64encode(key).decode("ascii") + "\n", mode=0o600)


def load_key(path: Path) -> bytes:
    try:
        text = Path(path).read_text(encoding="ascii").strip()
    except FileNotFoundError as exc:
        raise NotFoundError(f"key file {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise MuseeIOError(f"Cannot read key file {path}: {exc}") from exc
    try:
        key = base64.b64decode(text, validate=True)
    except binascii.Error as exc:
        raise InvalidFormatError(f"key file {path} is not base64") from exc
    _check_key(key)
    return key


def seal(plaintext: bytes, key: bytes) -> bytes:
    """Encrypt and authenticate *plaintext* into one combined blob."""

    _check_key(key)
    header = _HEADER.pack(BACKUP_MAGIC, BACKUP_FORMAT_VERSION)
    nonce = secrets.token_bytes(BACKUP_NONCE_SIZE)
    try:
        ciphertext = AESGCM(key).encrypt(nonce, plaintext, header)
    except (OverflowError, ValueError) as exc:
        raise ProcessingFailedError(f"Failed to create encrypted data: {exc}") from exc
    if len(ciphertext) != len(plaintext) + TAG_SIZE:
        raise ProcessingFailedError("Failed to create encrypted data")
    return header + nonce + ciphertext


def open_sealed(blob: bytes, key: bytes) -> bytes:
    """Verify and decrypt a blob produced by :func:`seal`."""

    _check_key(key)
    if len(blob) < HEADER_SIZE + BACKUP_NONCE_SIZE + TAG_SIZE:
        raise InvalidFormatError("backup file is truncated")
    header = blob[:HEADER_SIZE]
    magic, version = _HEADER.unpack(header)
    if magic != BACKUP_MAGIC:
        raise InvalidFormatError("not a museum backup file")
    if version != BACKUP_FORMAT_VERSION:
        raise InvalidFormatError(f"unsupported backup format version {version}")
    nonce = blob[HEADER_SIZE:HEADER_SIZE + BACKUP_NONCE_SIZE]
    ciphertext = blob[HEADER_SIZE + BACKUP_NONCE_SIZE:]
    try:
        return AESGCM(key).decrypt(nonce, ciphertext, header)
    except InvalidTag as exc:
        raise ProcessingFailedError("authentication failed: wrong key or corrupted backup") from exc
