"""Durable identifiers used for cross references."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import InvalidArgumentError, InvalidFormatError


@dataclass(frozen=True, order=True)
class StableID:
    """Opaque caller-chosen identifier, stable across renames."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value:
            raise InvalidArgumentError("identifier must be a non-empty string")

    def __str__(self) -> str:
        return self.value

    def to_json(self) -> str:
        return self.value

    @classmethod
    def from_json(cls, raw: Any) -> "StableID":
        """Decode either the plain string form or ``{"rawValue": ...}``."""

        if isinstance(raw, dict):
            raw = raw.get("rawValue")
        if not isinstance(raw, str) or not raw:
            raise InvalidFormatError(f"Invalid identifier: {raw!r}")
        return cls(raw)
