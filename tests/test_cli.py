from __future__ import annotations

import json
from pathlib import Path

import pytest

from musee.cas import sha256_hex
from musee.cli import main, parse_wing_option
from musee.config import KEY_FILE_ENV
from musee.errors import InvalidArgumentError
from musee.library import MuseumLibrary


def test_init_with_default_wings(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    museum = tmp_path / "Main.museum"
    assert main(["init", str(museum)]) == 0
    assert [w.id.value for w in MuseumLibrary(museum).read_index().wings] == ["fitness", "singers", "actors"]

    assert main(["wings", str(museum)]) == 0
    out = capsys.readouterr().out
    assert "fitness\tFitness" in out


def test_create_wing_and_duplicate_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    museum = tmp_path / "Main.museum"
    main(["init", str(museum), "--wing", "fitness:Fitness"])
    assert main(["create-wing", str(museum), "dancers", "Dancers", "--desc", "Dance"]) == 0
    assert MuseumLibrary(museum).read_index().wings[-1].description == "Dance"

    capsys.readouterr()
    assert main(["create-wing", str(museum), "dancers", "Again"]) == 1
    assert capsys.readouterr().err.startswith("Invalid argument: duplicate wing id")


def test_ingest_and_cat_object(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    museum = tmp_path / "Main.museum"
    main(["init", str(museum)])
    media = tmp_path / "ten.bin"
    media.write_bytes(b"0123456789")
    capsys.readouterr()

    assert main(["ingest", str(museum), str(media)]) == 0
    ref = json.loads(capsys.readouterr().out)
    assert ref["digest"] == sha256_hex(b"0123456789")
    assert ref["sizeBytes"] == 10

    assert main(["objects", str(museum)]) == 0
    assert capsys.readouterr().out.splitlines() == [ref["digest"]]

    out_file = tmp_path / "copy.bin"
    assert main(["cat-object", str(museum), ref["digest"], "-o", str(out_file)]) == 0
    assert out_file.read_bytes() == b"0123456789"


def test_install_validate_and_list(tmp_path: Path, make_bundle, capsys: pytest.CaptureFixture[str]) -> None:
    museum = tmp_path / "Main.museum"
    main(["init", str(museum)])
    bundle = make_bundle()

    assert main(["validate", str(bundle.path)]) == 0
    assert main(["install", str(museum), "singers", str(bundle.path)]) == 0
    capsys.readouterr()
    assert main(["exhibits", str(museum), "singers"]) == 0
    assert capsys.readouterr().out.splitlines() == ["alice.musee"]


def test_backup_and_restore_with_key_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    museum = tmp_path / "Main.museum"
    key_file = tmp_path / "backup.key"
    backup = tmp_path / "Main.museum.enc"
    main(["init", str(museum)])

    assert main(["keygen", str(key_file)]) == 0
    assert main(["keygen", str(key_file)]) == 1
    assert main(["backup", str(museum), str(backup), "--key-file", str(key_file)]) == 0

    monkeypatch.setenv(KEY_FILE_ENV, str(key_file))
    assert main(["restore", str(backup), str(tmp_path / "Restored.museum")]) == 0
    assert MuseumLibrary(tmp_path / "Restored.museum").read_index() == MuseumLibrary(museum).read_index()


def test_backup_without_key(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.delenv(KEY_FILE_ENV, raising=False)
    museum = tmp_path / "Main.museum"
    main(["init", str(museum)])
    capsys.readouterr()
    assert main(["backup", str(museum), str(tmp_path / "out.enc")]) == 1
    assert "key file is required" in capsys.readouterr().err


def test_missing_museum_reports_not_found(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["wings", str(tmp_path / "nowhere")]) == 1
    assert capsys.readouterr().err.startswith("Not found:")


def test_parse_wing_option() -> None:
    wing = parse_wing_option("fitness:Fitness & Health")
    assert wing.id.value == "fitness"
    assert wing.name == "Fitness & Health"
    with pytest.raises(InvalidArgumentError):
        parse_wing_option("no-colon")
