"""In-memory item registry for Homestash.

Items are owned records with a name that is unique per owner, a description
and a category. Actions that change or remove an item require the caller's
owner identity to match the item's owner.
"""

from __future__ import annotations

import logging
import uuid

from .exceptions import NameConflictError, NotFoundError, OwnershipError
from .models import (
    Item,
    new_uuid4,
    parse_uuid4,
    record_key,
    validate_name,
    validate_text,
)

LOGGER = logging.getLogger(__name__)

ItemRef = str | uuid.UUID


class ItemRegistry:
    """Registry of items across all owners."""

    def __init__(self) -> None:
        self._items_by_id: dict[str, Item] = {}

    # -----------------------------
    # Internal helpers
    # -----------------------------

    def _lookup(self, item: ItemRef) -> Item:
        found = self._items_by_id.get(record_key(item, kind="item"))
        if found is None:
            raise NotFoundError("item not found")
        return found

    def _name_taken(self, owner: uuid.UUID, name: str, *, exclude_key: str | None = None) -> bool:
        return any(
            it.owner == owner and it.name == name
            for key, it in self._items_by_id.items()
            if key != exclude_key
        )

    # -----------------------------
    # Public API: actions
    # -----------------------------

    def create_item(
        self, owner: ItemRef, name: str, description: str = "", category: str = ""
    ) -> Item:
        owner_id = parse_uuid4(owner, field_name="owner")
        name = validate_name(name)
        description = validate_text(description, field_name="description")
        category = validate_text(category, field_name="category")
        if self._name_taken(owner_id, name):
            raise NameConflictError(f"an item named '{name}' already exists")

        item = Item(
            id=new_uuid4(), owner=owner_id, name=name, description=description, category=category
        )
        self._items_by_id[str(item.id)] = item
        LOGGER.debug(
            "Item created",
            extra={"domain": "homestash", "op": "create_item", "item_id": str(item.id)},
        )
        return item

    def delete_item(self, owner: ItemRef, item: ItemRef) -> None:
        owner_id = parse_uuid4(owner, field_name="owner")
        current = self._lookup(item)
        if current.owner != owner_id:
            raise OwnershipError("item belongs to a different owner")
        self._items_by_id.pop(str(current.id))
        LOGGER.debug(
            "Item deleted",
            extra={"domain": "homestash", "op": "delete_item", "item_id": str(current.id)},
        )

    def update_item_details(
        self,
        owner: ItemRef,
        item: ItemRef,
        *,
        name: str | None = None,
        description: str | None = None,
        category: str | None = None,
    ) -> Item:
        """Update any of name/description/category; omitted fields are unchanged."""

        owner_id = parse_uuid4(owner, field_name="owner")
        current = self._lookup(item)
        if current.owner != owner_id:
            raise OwnershipError("item belongs to a different owner")

        key = str(current.id)
        # Validate everything before touching the record
        new_name = current.name if name is None else validate_name(name)
        if new_name != current.name and self._name_taken(owner_id, new_name, exclude_key=key):
            raise NameConflictError(f"an item named '{new_name}' already exists")
        new_description = (
            current.description
            if description is None
            else validate_text(description, field_name="description")
        )
        new_category = (
            current.category if category is None else validate_text(category, field_name="category")
        )

        current.name = new_name
        current.description = new_description
        current.category = new_category
        LOGGER.debug(
            "Item updated",
            extra={"domain": "homestash", "op": "update_item_details", "item_id": key},
        )
        return current

    # -----------------------------
    # Public API: queries
    # -----------------------------

    def get_item(self, item: ItemRef) -> Item:
        return self._lookup(item)

    def get_item_owner(self, item: ItemRef) -> uuid.UUID:
        return self._lookup(item).owner

    def get_item_name(self, item: ItemRef) -> str:
        return self._lookup(item).name

    def get_item_description(self, item: ItemRef) -> str:
        return self._lookup(item).description

    def get_item_category(self, item: ItemRef) -> str:
        return self._lookup(item).category

    def get_items(self) -> list[Item]:
        return list(self._items_by_id.values())

    def get_items_string(self) -> list[str]:
        return [it.name for it in self._items_by_id.values()]

    def get_items_by_user(self, owner: ItemRef) -> list[Item]:
        owner_id = parse_uuid4(owner, field_name="owner")
        return [it for it in self._items_by_id.values() if it.owner == owner_id]

    @staticmethod
    def equals(item1: Item, item2: Item) -> bool:
        return (
            item1.owner == item2.owner
            and item1.name == item2.name
            and item1.description == item2.description
            and item1.category == item2.category
        )

    def __len__(self) -> int:
        return len(self._items_by_id)
