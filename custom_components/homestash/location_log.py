"""In-memory location logs for Homestash.

One log per item records the space the item currently sits in and every
space it has been placed in, oldest first. Items and spaces arrive as
already-resolved records; the store only reads their ``id`` and ``owner``.
"""

from __future__ import annotations

import logging

from .exceptions import ConflictError, NotFoundError, OwnershipError
from .models import Item, LocationLog, Space, new_uuid4

LOGGER = logging.getLogger(__name__)


class LocationLogStore:
    """Store for location logs keyed by item id."""

    def __init__(self) -> None:
        self._logs_by_item_id: dict[str, LocationLog] = {}

    def create_log(self, item: Item, space: Space) -> LocationLog:
        """Start tracking ``item`` in ``space``.

        Raises:
            OwnershipError: the item and space have different owners.
            ConflictError: the item already has a log.
        """

        if item.owner != space.owner:
            raise OwnershipError("item and space have different owners")
        key = str(item.id)
        if key in self._logs_by_item_id:
            raise ConflictError("item already has a location log")
        log = LocationLog(
            id=new_uuid4(),
            item_id=item.id,
            owner=item.owner,
            current_space_id=space.id,
            history=[space.id],
        )
        self._logs_by_item_id[key] = log
        LOGGER.debug(
            "Location log created",
            extra={
                "domain": "homestash",
                "op": "create_log",
                "item_id": key,
                "space_id": str(space.id),
            },
        )
        return log

    def place_item(self, item: Item, space: Space) -> LocationLog:
        """Record that ``item`` now sits in ``space``.

        Creates the log when the item has none. Placing an item where it
        already is leaves the history untouched.
        """

        log = self._logs_by_item_id.get(str(item.id))
        if log is None:
            return self.create_log(item, space)
        if item.owner != space.owner:
            raise OwnershipError("item and space have different owners")
        if log.current_space_id == space.id:
            return log
        log.history.append(space.id)
        log.current_space_id = space.id
        LOGGER.debug(
            "Item placed",
            extra={
                "domain": "homestash",
                "op": "place_item",
                "item_id": str(item.id),
                "space_id": str(space.id),
            },
        )
        return log

    def delete_log(self, item: Item) -> None:
        key = str(item.id)
        if self._logs_by_item_id.pop(key, None) is None:
            raise NotFoundError("no location log exists for this item")
        LOGGER.debug(
            "Location log deleted",
            extra={"domain": "homestash", "op": "delete_log", "item_id": key},
        )

    def get_item_log(self, item: Item) -> LocationLog | None:
        return self._logs_by_item_id.get(str(item.id))

    def get_logs(self) -> list[LocationLog]:
        return list(self._logs_by_item_id.values())

    @staticmethod
    def equals(log1: LocationLog, log2: LocationLog) -> bool:
        return (
            log1.item_id == log2.item_id
            and log1.owner == log2.owner
            and log1.current_space_id == log2.current_space_id
            and log1.history == log2.history
        )

    def __len__(self) -> int:
        return len(self._logs_by_item_id)
