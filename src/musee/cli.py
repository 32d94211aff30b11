"""
Musée command-line interface.

Usage:
    musee init LIBRARY [--wing ID:NAME]...
    musee create-wing LIBRARY ID NAME [--desc TEXT]
    musee wings LIBRARY
    musee ingest LIBRARY FILE...
    musee objects LIBRARY
    musee cat-object LIBRARY DIGEST [-o FILE]
    musee install LIBRARY WING BUNDLE
    musee exhibits LIBRARY WING
    musee validate BUNDLE
    musee keygen KEY_FILE
    musee backup LIBRARY BACKUP_FILE [--key-file KEY_FILE]
    musee restore BACKUP_FILE LIBRARY [--key-file KEY_FILE]
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Sequence

from .bundle import MuseeBundle
from .config import DEFAULT_WINGS, KEY_FILE_ENV
from .crypto import generate_key, load_key, save_key
from .errors import InvalidArgumentError, MuseeError, MuseeIOError
from .ids import StableID
from .library import MuseumLibrary, Wing
from .utils.logging import get_logger

logger = logging.getLogger(__name__)


def parse_wing_option(value: str) -> Wing:
    """Parse an ``ID:NAME`` option value."""

    wing_id, sep, name = value.partition(":")
    if not sep or not wing_id or not name:
        raise InvalidArgumentError("--wing value must be <id>:<name>")
    return Wing(id=StableID(wing_id), name=name)


def _resolve_key(args: argparse.Namespace) -> bytes:
    key_file = args.key_file or os.environ.get(KEY_FILE_ENV)
    if not key_file:
        raise InvalidArgumentError(f"a key file is required (--key-file or ${KEY_FILE_ENV})")
    return load_key(Path(key_file))


def cmd_init(args: argparse.Namespace) -> None:
    if args.wing:
        wings = [parse_wing_option(value) for value in args.wing]
    else:
        wings = [
            Wing(id=StableID(wing_id), name=name, description=description)
            for wing_id, name, description in DEFAULT_WINGS
        ]
    MuseumLibrary.create_new(args.library, wings)
    print(f"Created museum at {args.library}")


def cmd_create_wing(args: argparse.Namespace) -> None:
    library = MuseumLibrary(args.library)
    library.add_wing(Wing(id=StableID(args.wing_id), name=args.name, description=args.desc))
    print(f"Created wing {args.name} in {args.library}")


def cmd_wings(args: argparse.Namespace) -> None:
    index = MuseumLibrary(args.library).read_index()
    for wing in index.wings:
        print(f"{wing.id}\t{wing.name}")


def cmd_ingest(args: argparse.Namespace) -> None:
    store = MuseumLibrary(args.library).objects
    for file_path in args.files:
        reference = store.ingest(file_path)
        print(json.dumps(reference.to_dict(), sort_keys=True))


def cmd_objects(args: argparse.Namespace) -> None:
    for digest in MuseumLibrary(args.library).objects.iter_digests():
        print(digest)


def cmd_cat_object(args: argparse.Namespace) -> None:
    data = MuseumLibrary(args.library).objects.load(args.digest)
    if args.output is None:
        sys.stdout.buffer.write(data)
        sys.stdout.buffer.flush()
        return
    try:
        args.output.write_bytes(data)
    except OSError as exc:
        raise MuseeIOError(f"Cannot write {args.output}: {exc}") from exc


def cmd_install(args: argparse.Namespace) -> None:
    destination = MuseumLibrary(args.library).install(MuseeBundle(args.bundle), StableID(args.wing_id))
    print(f"Installed {args.bundle.name} at {destination}")


def cmd_exhibits(args: argparse.Namespace) -> None:
    for path in MuseumLibrary(args.library).list_exhibits(StableID(args.wing_id)):
        print(path.name)


def cmd_validate(args: argparse.Namespace) -> None:
    MuseeBundle(args.bundle).validate()
    print(f"OK: {args.bundle.name}")


def cmd_keygen(args: argparse.Namespace) -> None:
    if args.key_file.exists():
        raise InvalidArgumentError(f"refusing to overwrite existing key file {args.key_file}")
    save_key(args.key_file, generate_key())
    print(f"Wrote key to {args.key_file}")


def cmd_backup(args: argparse.Namespace) -> None:
    MuseumLibrary(args.library).backup(args.backup_file, _resolve_key(args))
    print(f"Backed up {args.library} to {args.backup_file}")


def cmd_restore(args: argparse.Namespace) -> None:
    MuseumLibrary.restore(args.backup_file, _resolve_key(args), args.library)
    print(f"Restored {args.backup_file} to {args.library}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="musee",
        description="Content-addressed media libraries with encrypted backups",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p = subparsers.add_parser("init", help="Create a new museum")
    p.add_argument("library", type=Path)
    p.add_argument("--wing", action="append", metavar="ID:NAME", help="Initial wing (repeatable)")
    p.set_defaults(func=cmd_init)

    p = subparsers.add_parser("create-wing", help="Add a wing to a museum")
    p.add_argument("library", type=Path)
    p.add_argument("wing_id")
    p.add_argument("name")
    p.add_argument("--desc", default=None, help="Wing description")
    p.set_defaults(func=cmd_create_wing)

    p = subparsers.add_parser("wings", help="List wings")
    p.add_argument("library", type=Path)
    p.set_defaults(func=cmd_wings)

    p = subparsers.add_parser("ingest", help="Store files in the object store")
    p.add_argument("library", type=Path)
    p.add_argument("files", nargs="+", type=Path)
    p.set_defaults(func=cmd_ingest)

    p = subparsers.add_parser("objects", help="List stored object digests")
    p.add_argument("library", type=Path)
    p.set_defaults(func=cmd_objects)

    p = subparsers.add_parser("cat-object", help="Write a stored object to stdout or a file")
    p.add_argument("library", type=Path)
    p.add_argument("digest")
    p.add_argument("-o", "--output", type=Path, default=None)
    p.set_defaults(func=cmd_cat_object)

    p = subparsers.add_parser("install", help="Install a bundle into a wing")
    p.add_argument("library", type=Path)
    p.add_argument("wing_id")
    p.add_argument("bundle", type=Path)
    p.set_defaults(func=cmd_install)

    p = subparsers.add_parser("exhibits", help="List installed bundles of a wing")
    p.add_argument("library", type=Path)
    p.add_argument("wing_id")
    p.set_defaults(func=cmd_exhibits)

    p = subparsers.add_parser("validate", help="Validate a .musee bundle")
    p.add_argument("bundle", type=Path)
    p.set_defaults(func=cmd_validate)

    p = subparsers.add_parser("keygen", help="Generate a backup key file")
    p.add_argument("key_file", type=Path)
    p.set_defaults(func=cmd_keygen)

    p = subparsers.add_parser("backup", help="Seal a museum into an encrypted file")
    p.add_argument("library", type=Path)
    p.add_argument("backup_file", type=Path)
    p.add_argument("--key-file", type=Path, default=None)
    p.set_defaults(func=cmd_backup)

    p = subparsers.add_parser("restore", help="Restore a museum from an encrypted file")
    p.add_argument("backup_file", type=Path)
    p.add_argument("library", type=Path)
    p.add_argument("--key-file", type=Path, default=None)
    p.set_defaults(func=cmd_restore)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    get_logger(verbose=args.verbose)
    try:
        args.func(args)
    except MuseeError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(str(exc), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
