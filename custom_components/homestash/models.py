"""Typed models and validation helpers for Homestash.

This module defines the record shapes for the five concepts (User, Item,
Space, Bundle, LocationLog) along with validation and normalization helpers
shared by the stores.

Records reference each other by UUID v4 handles only; stores keep them in flat
maps keyed by the string form of the id. The intent is to keep these models
framework-agnostic and free of I/O.
"""

from __future__ import annotations

import unicodedata
import uuid
from dataclasses import dataclass, field
from typing import Final

from .const import NAME_MAX_LENGTH
from .exceptions import NotFoundError, ValidationError

SPACE_TYPE_MAX_LENGTH: Final[int] = 60
TEXT_MAX_LENGTH: Final[int] = 2_000


@dataclass
class User:
    """A registered household member; ``id`` is the owner identity used elsewhere."""

    id: uuid.UUID
    username: str


@dataclass
class Item:
    """An owned inventory item."""

    id: uuid.UUID
    owner: uuid.UUID
    name: str
    description: str = ""
    category: str = ""


@dataclass(frozen=True)
class Space:
    """A storage location node.

    ``parent_id`` is the single source of truth for the hierarchy; children are
    derived and cached by the store. Records are frozen; moves and renames
    store a ``dataclasses.replace`` copy.
    """

    id: uuid.UUID
    owner: uuid.UUID
    name: str
    space_type: str
    parent_id: uuid.UUID | None = None


@dataclass
class Bundle:
    """A named, purpose-based group of items for one owner."""

    id: uuid.UUID
    owner: uuid.UUID
    name: str
    members: list[uuid.UUID] = field(default_factory=list)


@dataclass
class LocationLog:
    """Current space of an item plus every space it has been placed in.

    ``history`` is append-only and ordered oldest first; its last entry always
    equals ``current_space_id``.
    """

    id: uuid.UUID
    item_id: uuid.UUID
    owner: uuid.UUID
    current_space_id: uuid.UUID
    history: list[uuid.UUID] = field(default_factory=list)


@dataclass
class SpaceNode:
    """Tree node for spaces when building hierarchies."""

    space: Space
    children: list[SpaceNode] = field(default_factory=list)


# -----------------------------
# Utility helpers
# -----------------------------


def parse_uuid4(value: str | uuid.UUID, *, field_name: str = "id") -> uuid.UUID:
    """Parse a UUID value and ensure it is version 4.

    Accepts an existing uuid.UUID and returns it unchanged.
    Raises ValidationError when parsing fails or version is not 4.
    """

    UUID_VERSION_V4: Final[int] = 4
    if isinstance(value, uuid.UUID):
        if value.version != UUID_VERSION_V4:
            raise ValidationError(f"{field_name} must be a UUID v4")
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a UUID v4 string")
    try:
        parsed = uuid.UUID(value)
    except ValueError as exc:
        raise ValidationError(f"{field_name} must be a UUID v4 string") from exc
    if parsed.version != UUID_VERSION_V4:
        raise ValidationError(f"{field_name} must be a UUID v4")
    return parsed


def record_key(value: str | uuid.UUID, *, kind: str) -> str:
    """Normalize a record reference to the store key.

    Unparseable references cannot name a stored record, so they surface as
    NotFoundError for ``kind`` rather than a validation failure.
    """

    try:
        return str(parse_uuid4(value, field_name=f"{kind}_id"))
    except ValidationError as exc:
        raise NotFoundError(f"{kind} not found") from exc


def new_uuid4() -> uuid.UUID:
    """Generate a UUID v4 object."""

    return uuid.uuid4()


def normalize_text_for_sort(text: str) -> str:
    """Return a case-insensitive, accent-folded string for lexicographic sorting."""

    if not text:
        return ""
    nfkd = unicodedata.normalize("NFKD", text)
    ascii_text = nfkd.encode("ascii", "ignore").decode("ascii")
    collapsed = " ".join(ascii_text.split())
    return collapsed.casefold()


def validate_name(name: str, *, field_name: str = "name") -> str:
    """Validate a record name and return a trimmed value.

    Enforces a non-empty string and the shared maximum length.
    """

    if not isinstance(name, str):
        raise ValidationError(f"{field_name} is required and must be a non-empty string")
    trimmed = name.strip()
    if len(trimmed) == 0:
        raise ValidationError(f"{field_name} is required and must be a non-empty string")
    if len(trimmed) > NAME_MAX_LENGTH:
        raise ValidationError(f"{field_name} must be at most {NAME_MAX_LENGTH} characters")
    return trimmed


def validate_space_type(space_type: str) -> str:
    """Validate the free-form space classification (may be empty)."""

    if not isinstance(space_type, str):
        raise ValidationError("space_type must be a string")
    trimmed = space_type.strip()
    if len(trimmed) > SPACE_TYPE_MAX_LENGTH:
        raise ValidationError(f"space_type must be at most {SPACE_TYPE_MAX_LENGTH} characters")
    return trimmed


def validate_text(value: str | None, *, field_name: str) -> str:
    """Validate optional free text such as descriptions; None becomes ""."""

    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")
    if len(value) > TEXT_MAX_LENGTH:
        raise ValidationError(f"{field_name} must be at most {TEXT_MAX_LENGTH} characters")
    return value.strip()
