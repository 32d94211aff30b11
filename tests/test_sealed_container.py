from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from musee.crypto import HEADER_SIZE, generate_key, load_key, open_sealed, save_key, seal
from musee.errors import InvalidArgumentError, InvalidFormatError, NotFoundError, ProcessingFailedError


def test_seal_and_open() -> None:
    key = generate_key()
    blob = seal(b"library tree", key)
    assert len(blob) == HEADER_SIZE + 12 + len(b"library tree") + 16
    assert open_sealed(blob, key) == b"library tree"


def test_nonce_is_fresh_per_seal() -> None:
    key = generate_key()
    assert seal(b"same", key) != seal(b"same", key)


def test_foreign_magic_rejected() -> None:
    key = generate_key()
    blob = bytearray(seal(b"payload", key))
    blob[0:4] = b"XXXX"
    with pytest.raises(InvalidFormatError):
        open_sealed(bytes(blob), key)


def test_truncated_blob() -> None:
    with pytest.raises(InvalidFormatError):
        open_sealed(b"MUSB\x01short", generate_key())


def test_flipped_nonce_fails_authentication() -> None:
    key = generate_key()
    blob = bytearray(seal(b"payload", key))
    blob[HEADER_SIZE] ^= 0xFF
    with pytest.raises(ProcessingFailedError):
        open_sealed(bytes(blob), key)


def test_key_file_round_trip(tmp_path: Path) -> None:
    key = generate_key()
    path = tmp_path / "backup.key"
    save_key(path, key)
    assert load_key(path) == key
    if os.name == "posix":
        assert stat.S_IMODE(path.stat().st_mode) == 0o600


def test_load_key_errors(tmp_path: Path) -> None:
    with pytest.raises(NotFoundError):
        load_key(tmp_path / "missing.key")

    bad = tmp_path / "bad.key"
    bad.write_text("!!! not base64 !!!", encoding="ascii")
    with pytest.raises(InvalidFormatError):
        load_key(bad)

    short = tmp_path / "short.key"
    short.write_text("c2hvcnQ=", encoding="ascii")
    with pytest.raises(InvalidArgumentError):
        load_key(short)
