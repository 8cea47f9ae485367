"""In-memory bundle manager for Homestash.

A bundle is a named, purpose-based set of item ids (e.g. "ice skating")
owned by one user. Bundles are addressed by ``(owner, name)``: another user's
bundle with the same name is simply not visible to the caller. Item ids are
opaque here; checking that an item exists and belongs to the same owner is
the caller's responsibility.
"""

from __future__ import annotations

import logging
import uuid

from .exceptions import ConflictError, NameConflictError, NotFoundError
from .models import Bundle, new_uuid4, parse_uuid4, validate_name

LOGGER = logging.getLogger(__name__)

OwnerRef = str | uuid.UUID


class BundleManager:
    """Store for bundles keyed by id."""

    def __init__(self) -> None:
        self._bundles_by_id: dict[str, Bundle] = {}

    def _find(self, owner: uuid.UUID, name: str) -> Bundle | None:
        for bundle in self._bundles_by_id.values():
            if bundle.owner == owner and bundle.name == name:
                return bundle
        return None

    def _require(self, owner: uuid.UUID, name: str) -> Bundle:
        bundle = self._find(owner, name)
        if bundle is None:
            raise NotFoundError("bundle not found")
        return bundle

    # -----------------------------
    # Public API: actions
    # -----------------------------

    def create_bundle(self, owner: OwnerRef, name: str) -> Bundle:
        owner_id = parse_uuid4(owner, field_name="owner")
        name = validate_name(name)
        if self._find(owner_id, name) is not None:
            raise NameConflictError(f"a bundle named '{name}' already exists")
        bundle = Bundle(id=new_uuid4(), owner=owner_id, name=name)
        self._bundles_by_id[str(bundle.id)] = bundle
        LOGGER.debug(
            "Bundle created",
            extra={"domain": "homestash", "op": "create_bundle", "bundle_id": str(bundle.id)},
        )
        return bundle

    def delete_bundle(self, owner: OwnerRef, name: str) -> None:
        owner_id = parse_uuid4(owner, field_name="owner")
        bundle = self._require(owner_id, name)
        self._bundles_by_id.pop(str(bundle.id))
        LOGGER.debug(
            "Bundle deleted",
            extra={"domain": "homestash", "op": "delete_bundle", "bundle_id": str(bundle.id)},
        )

    def add_item_to_bundle(self, owner: OwnerRef, item: OwnerRef, bundle_name: str) -> Bundle:
        owner_id = parse_uuid4(owner, field_name="owner")
        item_id = parse_uuid4(item, field_name="item_id")
        bundle = self._require(owner_id, bundle_name)
        if item_id in bundle.members:
            raise ConflictError("item is already in the bundle")
        bundle.members.append(item_id)
        LOGGER.debug(
            "Item added to bundle",
            extra={
                "domain": "homestash",
                "op": "add_item_to_bundle",
                "bundle_id": str(bundle.id),
                "item_id": str(item_id),
            },
        )
        return bundle

    def remove_item_from_bundle(
        self, owner: OwnerRef, item: OwnerRef, bundle_name: str
    ) -> Bundle:
        owner_id = parse_uuid4(owner, field_name="owner")
        item_id = parse_uuid4(item, field_name="item_id")
        bundle = self._require(owner_id, bundle_name)
        if item_id not in bundle.members:
            raise NotFoundError("item is not in the bundle")
        bundle.members.remove(item_id)
        LOGGER.debug(
            "Item removed from bundle",
            extra={
                "domain": "homestash",
                "op": "remove_item_from_bundle",
                "bundle_id": str(bundle.id),
                "item_id": str(item_id),
            },
        )
        return bundle

    def discard_item(self, item: OwnerRef) -> int:
        """Drop ``item`` from every bundle; returns how many bundles changed."""

        item_id = parse_uuid4(item, field_name="item_id")
        changed = 0
        for bundle in self._bundles_by_id.values():
            if item_id in bundle.members:
                bundle.members.remove(item_id)
                changed += 1
        return changed

    # -----------------------------
    # Public API: queries
    # -----------------------------

    def get_bundle(self, owner: OwnerRef, name: str) -> Bundle:
        return self._require(parse_uuid4(owner, field_name="owner"), name)

    def get_bundles(self) -> list[Bundle]:
        return list(self._bundles_by_id.values())

    def get_bundles_by_owner(self, owner: OwnerRef) -> list[Bundle]:
        owner_id = parse_uuid4(owner, field_name="owner")
        return [b for b in self._bundles_by_id.values() if b.owner == owner_id]

    def __len__(self) -> int:
        return len(self._bundles_by_id)
