from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from musee.cas import ContentAddressedStore, ContentReference, sha256_hex
from musee.errors import InvalidArgumentError, InvalidFormatError, MuseeIOError, NotFoundError


@pytest.fixture
def store(tmp_path: Path) -> ContentAddressedStore:
    return ContentAddressedStore(tmp_path)


def _object_files(store: ContentAddressedStore) -> list[Path]:
    return [p for p in store.objects_root.rglob("*") if p.is_file()]


def test_locate_rejects_short_digest(store: ContentAddressedStore) -> None:
    with pytest.raises(InvalidArgumentError):
        store.locate("ab")


def test_locate_rejects_non_hex_digest(store: ContentAddressedStore) -> None:
    with pytest.raises(InvalidArgumentError):
        store.locate("ab/../../etc")


def test_locate_nests_two_levels(store: ContentAddressedStore, tmp_path: Path) -> None:
    digest = sha256_hex(b"photo")
    path = store.locate(digest)
    assert path == tmp_path / "Objects" / digest[0:2] / digest[2:4] / digest
    assert path.relative_to(store.objects_root).parts == (digest[0:2], digest[2:4], digest)
    assert ContentAddressedStore(tmp_path).locate(digest) == path


def test_custom_objects_directory(tmp_path: Path) -> None:
    store = ContentAddressedStore(tmp_path, objects_dir_name="blobs")
    ref = store.store(b"abc", sha256_hex(b"abc"))
    assert ref.relative_path.startswith("blobs/")


def test_store_is_idempotent(store: ContentAddressedStore) -> None:
    data = b"same photo twice"
    digest = sha256_hex(data)

    first = store.store(data, digest)
    mtime = store.locate(digest).stat().st_mtime_ns
    second = store.store(data, digest)

    assert first == second
    assert first.size_bytes == len(data)
    assert first.relative_path == f"Objects/{digest[0:2]}/{digest[2:4]}/{digest}"
    assert len(_object_files(store)) == 1
    assert store.locate(digest).stat().st_mtime_ns == mtime


def test_first_store_wins(store: ContentAddressedStore) -> None:
    digest = sha256_hex(b"original")
    store.store(b"original", digest)
    store.store(b"imposter", digest)
    assert store.load(digest) == b"original"


def test_concurrent_stores_leave_one_object(store: ContentAddressedStore) -> None:
    data = b"raced" * 1000
    digest = sha256_hex(data)
    with ThreadPoolExecutor(max_workers=8) as pool:
        refs = list(pool.map(lambda _: store.store(data, digest), range(16)))
    assert len(set(refs)) == 1
    assert _object_files(store) == [store.locate(digest)]


def test_scenario_ingest_ten_bytes(library) -> None:
    media = library.root.parent / "ten.bin"
    media.write_bytes(b"0123456789")
    objects = library.objects

    ref = objects.ingest(media)
    digest = ref.digest

    assert digest == sha256_hex(b"0123456789")
    assert objects.exists(digest)
    assert objects.load(digest) == b"0123456789"
    assert ref.size_bytes == 10
    expected = library.root / "Objects" / digest[0:2] / digest[2:4] / digest
    assert expected.is_file()
    assert (library.root / ref.relative_path) == expected


def test_ingest_missing_file(store: ContentAddressedStore, tmp_path: Path) -> None:
    with pytest.raises(MuseeIOError):
        store.ingest(tmp_path / "nope.jpg")


def test_exists_and_load_missing(store: ContentAddressedStore) -> None:
    digest = sha256_hex(b"never stored")
    assert not store.exists(digest)
    assert not store.exists("ab")
    with pytest.raises(NotFoundError):
        store.load(digest)


def test_iter_digests_sorted(store: ContentAddressedStore) -> None:
    digests = [store.store(data, sha256_hex(data)).digest for data in (b"a", b"b", b"c")]
    assert list(store.iter_digests()) == sorted(digests)


def test_iter_digests_empty_store(store: ContentAddressedStore) -> None:
    assert list(store.iter_digests()) == []


def test_reference_dict_round_trip() -> None:
    ref = ContentReference(digest="abcd", relative_path="Objects/ab/cd/abcd", size_bytes=3)
    assert ref.to_dict() == {"digest": "abcd", "relativePath": "Objects/ab/cd/abcd", "sizeBytes": 3}
    assert ContentReference.from_dict(ref.to_dict()) == ref
    with pytest.raises(InvalidFormatError):
        ContentReference.from_dict({"digest": "abcd"})


def test_uppercase_digest_maps_to_same_object(store: ContentAddressedStore) -> None:
    data = b"case folded"
    digest = sha256_hex(data)

    upper_ref = store.store(data, digest.upper())
    lower_ref = store.store(data, digest)

    assert upper_ref == lower_ref
    assert upper_ref.digest == digest
    assert store.exists(digest) and store.exists(digest.upper())
    assert store.load(digest.upper()) == data
    assert _object_files(store) == [store.locate(digest)]
