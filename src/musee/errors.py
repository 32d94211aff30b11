"""Exception hierarchy shared by every Musée component."""

from __future__ import annotations


class MuseeError(Exception):
    """Base class for all errors raised by the library."""

    prefix = "Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.prefix}: {self.message}"


class InvalidArgumentError(MuseeError):
    """The caller passed something malformed; retrying will not help."""

    prefix = "Invalid argument"


class NotFoundError(MuseeError):
    """An object, manifest or wing does not exist."""

    prefix = "Not found"


class InvalidFormatError(MuseeError):
    """A document or container could not be decoded."""

    prefix = "Invalid format"


class InvalidDataError(MuseeError):
    """Decoded data violates an expected invariant."""

    prefix = "Invalid data"


class MuseeIOError(MuseeError):
    """Wraps a filesystem failure."""

    prefix = "I/O error"


class ProcessingFailedError(MuseeError):
    """Sealing or opening an encrypted container failed."""

    prefix = "Processing failed"


__all__ = [
    "InvalidArgumentError",
    "InvalidDataError",
    "InvalidFormatError",
    "MuseeError",
    "MuseeIOError",
    "NotFoundError",
    "ProcessingFailedError",
]
