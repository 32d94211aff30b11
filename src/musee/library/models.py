"""Manifest models describing a museum's wings."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..errors import InvalidArgumentError, InvalidFormatError
from ..ids import StableID

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(raw: Any) -> datetime:
    if not isinstance(raw, str):
        raise InvalidFormatError(f"Invalid timestamp: {raw!r}")
    try:
        parsed = datetime.strptime(raw, TIMESTAMP_FORMAT)
    except ValueError as exc:
        raise InvalidFormatError(f"Invalid timestamp: {raw!r}") from exc
    return parsed.replace(tzinfo=timezone.utc)


def _string_list(raw: Any, key: str) -> List[str]:
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        raise InvalidFormatError(f"'{key}' must be a list of strings")
    return list(raw)


@dataclass(frozen=True)
class Wing:
    """Top-level organisational unit of a museum."""

    id: StableID
    name: str
    description: Optional[str] = None
    categories: Tuple[str, ...] = ()
    shared_with: Optional[Tuple[str, ...]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id.to_json(),
            "name": self.name,
            "categories": list(self.categories),
        }
        if self.description is not None:
            data["description"] = self.description
        if self.shared_with is not None:
            data["sharedWith"] = list(self.shared_with)
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "Wing":
        if not isinstance(data, dict):
            raise InvalidFormatError("wing entry must be an object")
        if "id" not in data or not isinstance(data.get("name"), str):
            raise InvalidFormatError("wing entry requires 'id' and 'name'")
        description = data.get("description")
        if description is not None and not isinstance(description, str):
            raise InvalidFormatError("'description' must be a string")
        shared_with = data.get("sharedWith")
        return cls(
            id=StableID.from_json(data["id"]),
            name=data["name"],
            description=description,
            categories=tuple(_string_list(data.get("categories", []), "categories")),
            shared_with=None if shared_with is None else tuple(_string_list(shared_with, "sharedWith")),
        )


@dataclass(frozen=True)
class LibraryIndex:
    """The authoritative manifest of one museum library."""

    format_version: str
    created_at: datetime
    wings: Tuple[Wing, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "formatVersion": self.format_version,
            "createdAt": format_timestamp(self.created_at),
            "wings": [wing.to_dict() for wing in self.wings],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LibraryIndex":
        version = data.get("formatVersion")
        if not isinstance(version, str):
            raise InvalidFormatError("'formatVersion' must be a string")
        wings = data.get("wings")
        if not isinstance(wings, list):
            raise InvalidFormatError("'wings' must be a list")
        return cls(
            format_version=version,
            created_at=parse_timestamp(data.get("createdAt")),
            wings=tuple(Wing.from_dict(entry) for entry in wings),
        )

    def find_wing(self, wing_id: StableID) -> Optional[Wing]:
        for wing in self.wings:
            if wing.id == wing_id:
                return wing
        return None

    def with_wing(self, wing: Wing) -> "LibraryIndex":
        return replace(self, wings=self.wings + (wing,))


def validate_wing_id(wing_id: StableID) -> None:
    """Reject ids that would not map to exactly one directory name."""

    raw = wing_id.value
    if raw in (".", "..") or "/" in raw or "\\" in raw or "\x00" in raw:
        raise InvalidArgumentError(f"wing id is not a valid directory name: {raw!r}")


def validate_wings(wings: Iterable[Wing]) -> None:
    seen = set()
    for wing in wings:
        validate_wing_id(wing.id)
        if wing.id in seen:
            raise InvalidArgumentError(f"duplicate wing id: {wing.id}")
        seen.add(wing.id)
