import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

# Make the sources importable without an editable install.
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from musee.bundle import MuseeBundle  # noqa: E402
from musee.cas import sha256_hex  # noqa: E402
from musee.config import FORMAT_VERSION  # noqa: E402
from musee.crypto import generate_key  # noqa: E402
from musee.ids import StableID  # noqa: E402
from musee.library import MuseumLibrary, Wing  # noqa: E402


@pytest.fixture
def wings() -> list[Wing]:
    return [
        Wing(id=StableID("fitness"), name="Fitness", description="Fitness models and athletes"),
        Wing(id=StableID("singers"), name="Singers", categories=("pop", "jazz"), shared_with=("a@example.com",)),
    ]


@pytest.fixture
def library(tmp_path: Path, wings: list[Wing]) -> MuseumLibrary:
    return MuseumLibrary.create_new(tmp_path / "Main.museum", wings)


@pytest.fixture
def key() -> bytes:
    return generate_key()


@pytest.fixture
def make_bundle(tmp_path: Path):
    """Build a valid ``.musee`` bundle holding one media file."""

    def _make(name: str = "alice.musee", payload: bytes = b"fake jpeg bytes") -> MuseeBundle:
        media = tmp_path / f"{name}.media"
        media.write_bytes(payload)
        digest = sha256_hex(payload)
        manifest = {
            "bundle": {"formatVersion": FORMAT_VERSION, "createdAt": "2026-01-01T00:00:00Z", "app": "tests"},
            "assets": [{"id": "asset-1", "sha256": digest}],
        }
        return MuseeBundle.create(tmp_path / "bundles" / name, manifest, {digest: media})

    return _make


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers bound to a previous test's captured stderr."""

    yield
    from musee.utils import logging as musee_logging

    if musee_logging._LOGGER is not None:
        for handler in list(musee_logging._LOGGER.handlers):
            musee_logging._LOGGER.removeHandler(handler)
        musee_logging._LOGGER = None
