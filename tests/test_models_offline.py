"""Offline tests for Homestash models and helpers.

Scenarios cover UUID parsing, record key normalization, name/type/text
validation and the sort key used for ordering names.
"""

from __future__ import annotations

import uuid

import pytest
from custom_components.homestash.const import NAME_MAX_LENGTH
from custom_components.homestash.exceptions import NotFoundError, ValidationError
from custom_components.homestash.models import (
    Bundle,
    LocationLog,
    new_uuid4,
    normalize_text_for_sort,
    parse_uuid4,
    record_key,
    validate_name,
    validate_space_type,
    validate_text,
)


@pytest.mark.asyncio
async def test_parse_uuid4_accepts_strings_and_objects() -> None:
    value = new_uuid4()
    assert value.version == 4
    assert parse_uuid4(value) is value
    assert parse_uuid4(str(value)) == value


@pytest.mark.asyncio
async def test_parse_uuid4_rejects_other_inputs() -> None:
    with pytest.raises(ValidationError):
        parse_uuid4("not-a-uuid")
    with pytest.raises(ValidationError):
        parse_uuid4(str(uuid.uuid1()))
    with pytest.raises(ValidationError):
        parse_uuid4(uuid.uuid1())
    with pytest.raises(ValidationError):
        parse_uuid4(42)  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_record_key_maps_bad_ids_to_not_found() -> None:
    # A reference that cannot be a valid id cannot name a stored record
    value = new_uuid4()
    assert record_key(value, kind="space") == str(value)

    with pytest.raises(NotFoundError) as excinfo:
        record_key("garbage", kind="space")
    assert str(excinfo.value) == "space not found"


@pytest.mark.asyncio
async def test_validate_name_trims_and_bounds() -> None:
    assert validate_name("  Drawer 1 ") == "Drawer 1"
    assert validate_name("x" * NAME_MAX_LENGTH) == "x" * NAME_MAX_LENGTH

    with pytest.raises(ValidationError):
        validate_name("   ")
    with pytest.raises(ValidationError):
        validate_name("x" * (NAME_MAX_LENGTH + 1))
    with pytest.raises(ValidationError) as excinfo:
        validate_name(None, field_name="username")  # type: ignore[arg-type]
    assert "username" in str(excinfo.value)


@pytest.mark.asyncio
async def test_validate_space_type_and_text() -> None:
    assert validate_space_type(" drawer ") == "drawer"
    assert validate_space_type("") == ""
    with pytest.raises(ValidationError):
        validate_space_type("t" * 61)

    assert validate_text(None, field_name="description") == ""
    assert validate_text(" cordless ", field_name="description") == "cordless"
    with pytest.raises(ValidationError):
        validate_text(5, field_name="category")  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_normalize_text_for_sort() -> None:
    # Case- and accent-insensitive with collapsed whitespace
    assert normalize_text_for_sort("  Écrin   Box ") == "ecrin box"
    assert normalize_text_for_sort("") == ""
    names = ["banana", "Apple", "cherry"]
    assert sorted(names, key=normalize_text_for_sort) == ["Apple", "banana", "cherry"]


@pytest.mark.asyncio
async def test_collection_defaults_are_not_shared() -> None:
    owner = new_uuid4()
    first = Bundle(id=new_uuid4(), owner=owner, name="skating")
    second = Bundle(id=new_uuid4(), owner=owner, name="camping")
    first.members.append(new_uuid4())
    assert second.members == []

    log = LocationLog(
        id=new_uuid4(), item_id=new_uuid4(), owner=owner, current_space_id=new_uuid4()
    )
    assert log.history == []
