"""Offline tests for the item registry.

Scenarios:
- Create with defaults; names unique per owner only
- Update details (partial), rename conflicts, ownership checks
- Delete and query helpers
"""

from __future__ import annotations

import uuid

import pytest
from custom_components.homestash.exceptions import (
    NameConflictError,
    NotFoundError,
    OwnershipError,
    ValidationError,
)
from custom_components.homestash.items import ItemRegistry


@pytest.fixture
def items() -> ItemRegistry:
    return ItemRegistry()


@pytest.mark.asyncio
async def test_create_with_defaults(items, alice) -> None:
    item = items.create_item(alice.id, "Hammer")

    assert item.owner == alice.id
    assert item.description == ""
    assert item.category == ""
    assert items.get_item(str(item.id)) is item
    assert items.get_item_owner(item.id) == alice.id


@pytest.mark.asyncio
async def test_names_unique_per_owner(items, alice, bob) -> None:
    items.create_item(alice.id, "skates", "figure skates", "sport")

    with pytest.raises(NameConflictError):
        items.create_item(alice.id, "skates")
    items.create_item(bob.id, "skates")

    assert items.get_items_string() == ["skates", "skates"]
    assert [it.owner for it in items.get_items_by_user(bob.id)] == [bob.id]


@pytest.mark.asyncio
async def test_update_details_partial(items, alice) -> None:
    item = items.create_item(alice.id, "drill", "cordless", "tools")

    updated = items.update_item_details(alice.id, item.id, description="corded")

    assert updated.name == "drill"
    assert items.get_item_description(item.id) == "corded"
    assert items.get_item_category(item.id) == "tools"

    items.update_item_details(alice.id, item.id, name="big drill", category="power tools")
    assert items.get_item_name(item.id) == "big drill"
    assert items.get_item_category(item.id) == "power tools"


@pytest.mark.asyncio
async def test_update_rejects_conflicts_without_mutation(items, alice, bob) -> None:
    drill = items.create_item(alice.id, "drill", "cordless")
    items.create_item(alice.id, "saw")

    with pytest.raises(NameConflictError):
        items.update_item_details(alice.id, drill.id, name="saw", description="changed")
    with pytest.raises(ValidationError):
        items.update_item_details(alice.id, drill.id, name=" ", description="changed")
    with pytest.raises(OwnershipError):
        items.update_item_details(bob.id, drill.id, description="changed")

    assert items.get_item_name(drill.id) == "drill"
    assert items.get_item_description(drill.id) == "cordless"

    # Same name as itself is fine
    assert items.update_item_details(alice.id, drill.id, name="drill").name == "drill"


@pytest.mark.asyncio
async def test_delete(items, alice, bob) -> None:
    item = items.create_item(alice.id, "lamp")

    with pytest.raises(OwnershipError):
        items.delete_item(bob.id, item.id)
    assert len(items) == 1

    items.delete_item(alice.id, item.id)
    assert len(items) == 0
    with pytest.raises(NotFoundError):
        items.get_item(item.id)
    with pytest.raises(NotFoundError):
        items.delete_item(alice.id, uuid.uuid4())


@pytest.mark.asyncio
async def test_equals_compares_content(items, alice) -> None:
    first = items.create_item(alice.id, "cable", "usb", "electronics")
    second = items.create_item(alice.id, "cable 2", "usb", "electronics")

    assert not items.equals(first, second)

    # Same content in another registry compares equal despite a different id
    other = ItemRegistry().create_item(alice.id, "cable", "usb", "electronics")
    assert items.equals(first, other)
