"""In-memory space hierarchy for Homestash.

This module provides ``SpaceHierarchy``, the store that maintains every
owner's forest of storage spaces. Spaces live in one flat map keyed by id;
the parent pointer on each ``Space`` is authoritative and a cached
``parent -> children`` index is maintained alongside it for traversal.

Invariants enforced on every action:

- sibling names are unique per owner and parent (root spaces included);
- a space's owner never changes;
- the parent relation stays acyclic;
- a space with children cannot be deleted.

All preconditions are checked before any write. Operations are serialized
with a re-entrant lock so queries never observe a move half-applied.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace

from .exceptions import (
    CycleError,
    NameConflictError,
    NotEmptyError,
    NotFoundError,
    OwnershipError,
    ValidationError,
)
from .models import (
    Space,
    SpaceNode,
    new_uuid4,
    normalize_text_for_sort,
    parse_uuid4,
    record_key,
    validate_name,
    validate_space_type,
)

LOGGER = logging.getLogger(__name__)

SPACE_GUARD_MAX_STEPS: int = 10_000

SpaceRef = str | uuid.UUID


class SpaceHierarchy:
    """Store for all spaces across owners.

    Notes:
        - Root spaces of every owner share the ``None`` bucket of the children
          index; sibling checks for roots filter that bucket by owner.
        - Space records are frozen, so callers cannot edit them in place; moves
          and renames replace the stored record.
    """

    def __init__(self) -> None:
        self._spaces_by_id: dict[str, Space] = {}
        self._children_ids_by_parent_id: dict[str | None, set[str]] = {}
        self._lock = threading.RLock()

    # -----------------------------
    # Internal helpers
    # -----------------------------

    def _lookup(self, space: SpaceRef, *, kind: str = "space") -> Space:
        key = record_key(space, kind=kind)
        found = self._spaces_by_id.get(key)
        if found is None:
            raise NotFoundError(f"{kind} not found")
        return found

    @staticmethod
    def _require_owner(space: Space, owner: uuid.UUID, *, kind: str = "space") -> None:
        if space.owner != owner:
            raise OwnershipError(f"{kind} belongs to a different owner")

    @staticmethod
    def _parent_key(space: Space) -> str | None:
        return str(space.parent_id) if space.parent_id is not None else None

    def _sibling_names(
        self, owner: uuid.UUID, parent_key: str | None, *, exclude_key: str | None = None
    ) -> set[str]:
        names: set[str] = set()
        for child_key in self._children_ids_by_parent_id.get(parent_key, set()):
            if child_key == exclude_key:
                continue
            child = self._spaces_by_id[child_key]
            # The root bucket mixes owners; nested buckets are single-owner
            if child.owner != owner:
                continue
            names.add(child.name)
        return names

    def _add_space(self, space: Space) -> None:
        key = str(space.id)
        self._spaces_by_id[key] = space
        self._children_ids_by_parent_id.setdefault(self._parent_key(space), set()).add(key)

    def _remove_space(self, space: Space) -> None:
        key = str(space.id)
        self._spaces_by_id.pop(key, None)
        parent_key = self._parent_key(space)
        children = self._children_ids_by_parent_id.get(parent_key)
        if children is not None:
            children.discard(key)
            if not children:
                self._children_ids_by_parent_id.pop(parent_key, None)
        self._children_ids_by_parent_id.pop(key, None)

    def _collect_descendant_ids(self, root_id: str) -> set[str]:
        """Collect all descendant space IDs (excluding the root itself)."""

        result: set[str] = set()
        queue: list[str] = [root_id]
        while queue:
            current = queue.pop(0)
            for child_id in self._children_ids_by_parent_id.get(current, set()):
                if child_id not in result:
                    result.add(child_id)
                    queue.append(child_id)
        return result

    def _lineage(self, space: Space) -> list[Space]:
        """Return the chain of spaces from the root down to ``space``."""

        chain: list[Space] = []
        cursor: Space | None = space
        guard = 0
        while cursor is not None:
            guard += 1
            if guard > SPACE_GUARD_MAX_STEPS:  # pragma: no cover - degenerate cycles
                raise ValidationError("space graph too deep or cyclic")
            chain.append(cursor)
            parent_key = self._parent_key(cursor)
            cursor = self._spaces_by_id.get(parent_key) if parent_key is not None else None
        chain.reverse()
        return chain

    def _sorted(self, keys: set[str]) -> list[Space]:
        spaces = [self._spaces_by_id[k] for k in keys]
        spaces.sort(key=lambda s: str(s.id))
        spaces.sort(key=lambda s: normalize_text_for_sort(s.name))
        return spaces

    # -----------------------------
    # Public API: actions
    # -----------------------------

    def create_space(
        self,
        owner: SpaceRef,
        name: str,
        space_type: str,
        parent: SpaceRef | None = None,
    ) -> Space:
        """Create a childless space under ``parent`` (or as a root space).

        Raises:
            ValidationError: invalid owner, name or space_type.
            NotFoundError: ``parent`` does not exist.
            OwnershipError: ``parent`` belongs to another owner.
            NameConflictError: a sibling already uses ``name``.
        """

        owner_id = parse_uuid4(owner, field_name="owner")
        name = validate_name(name)
        space_type = validate_space_type(space_type)

        with self._lock:
            parent_key: str | None = None
            if parent is not None:
                parent_space = self._lookup(parent, kind="parent")
                self._require_owner(parent_space, owner_id, kind="parent")
                parent_key = str(parent_space.id)

            if name in self._sibling_names(owner_id, parent_key):
                raise NameConflictError(f"a sibling space named '{name}' already exists")

            space = Space(
                id=new_uuid4(),
                owner=owner_id,
                name=name,
                space_type=space_type,
                parent_id=uuid.UUID(parent_key) if parent_key is not None else None,
            )
            self._add_space(space)

        LOGGER.debug(
            "Space created",
            extra={
                "domain": "homestash",
                "op": "create_space",
                "space_id": str(space.id),
                "parent_id": parent_key,
            },
        )
        return space

    def move_space(self, owner: SpaceRef, space: SpaceRef, new_parent: SpaceRef) -> Space:
        """Re-parent ``space`` under ``new_parent``, keeping its subtree.

        Raises:
            NotFoundError: ``space`` or ``new_parent`` does not exist.
            OwnershipError: either one belongs to another owner.
            CycleError: ``new_parent`` is ``space`` or one of its descendants.
            NameConflictError: ``new_parent`` already has a child with the same name.
        """

        owner_id = parse_uuid4(owner, field_name="owner")

        with self._lock:
            current = self._lookup(space)
            target = self._lookup(new_parent, kind="new_parent")
            self._require_owner(current, owner_id)
            self._require_owner(target, owner_id, kind="new_parent")

            key = str(current.id)
            target_key = str(target.id)
            if target_key == key:
                raise CycleError("cannot move a space under itself")
            if target_key in self._collect_descendant_ids(key):
                raise CycleError("cannot move a space under one of its descendants")

            old_parent_key = self._parent_key(current)
            if old_parent_key == target_key:
                return current

            if current.name in self._sibling_names(owner_id, target_key, exclude_key=key):
                raise NameConflictError(
                    f"a sibling space named '{current.name}' already exists"
                )

            # Stage on copies so a failure cannot leave the space under both
            # parents or neither
            staged_spaces = dict(self._spaces_by_id)
            staged_children = {k: set(v) for k, v in self._children_ids_by_parent_id.items()}

            moved = replace(current, parent_id=target.id)
            staged_spaces[key] = moved
            old_bucket = staged_children.get(old_parent_key)
            if old_bucket is not None:
                old_bucket.discard(key)
                if not old_bucket:
                    staged_children.pop(old_parent_key)
            staged_children.setdefault(target_key, set()).add(key)

            self._children_ids_by_parent_id = staged_children
            self._spaces_by_id = staged_spaces

        LOGGER.debug(
            "Space moved",
            extra={
                "domain": "homestash",
                "op": "move_space",
                "space_id": key,
                "old_parent_id": old_parent_key,
                "new_parent_id": target_key,
            },
        )
        return moved

    def rename_space(self, owner: SpaceRef, space: SpaceRef, new_name: str) -> Space:
        """Rename ``space``; renaming to its current name is a no-op success."""

        owner_id = parse_uuid4(owner, field_name="owner")
        new_name = validate_name(new_name, field_name="new_name")

        with self._lock:
            current = self._lookup(space)
            self._require_owner(current, owner_id)
            key = str(current.id)
            siblings = self._sibling_names(owner_id, self._parent_key(current), exclude_key=key)
            if new_name in siblings:
                raise NameConflictError(f"a sibling space named '{new_name}' already exists")
            renamed = replace(current, name=new_name)
            self._spaces_by_id[key] = renamed

        LOGGER.debug(
            "Space renamed",
            extra={"domain": "homestash", "op": "rename_space", "space_id": key},
        )
        return renamed

    def delete_space(self, owner: SpaceRef, space: SpaceRef) -> None:
        """Delete a childless space.

        Raises:
            NotFoundError, OwnershipError, or NotEmptyError when ``space`` still
            has children.
        """

        owner_id = parse_uuid4(owner, field_name="owner")

        with self._lock:
            current = self._lookup(space)
            self._require_owner(current, owner_id)
            key = str(current.id)
            if self._children_ids_by_parent_id.get(key):
                raise NotEmptyError("cannot delete a space that has child spaces")
            self._remove_space(current)

        LOGGER.debug(
            "Space deleted",
            extra={"domain": "homestash", "op": "delete_space", "space_id": key},
        )

    # -----------------------------
    # Public API: queries
    # -----------------------------

    def get_space(self, space: SpaceRef) -> Space:
        with self._lock:
            return self._lookup(space)

    def get_space_owner(self, space: SpaceRef) -> uuid.UUID:
        return self.get_space(space).owner

    def get_space_name(self, space: SpaceRef) -> str:
        return self.get_space(space).name

    def get_space_type(self, space: SpaceRef) -> str:
        return self.get_space(space).space_type

    def get_space_parent(self, space: SpaceRef) -> Space | None:
        """Return the parent space, or None for a root space."""

        with self._lock:
            current = self._lookup(space)
            parent_key = self._parent_key(current)
            if parent_key is None:
                return None
            return self._spaces_by_id[parent_key]

    def get_space_children(self, space: SpaceRef) -> list[Space]:
        """Return direct children ordered by name (case-insensitive)."""

        with self._lock:
            current = self._lookup(space)
            return self._sorted(self._children_ids_by_parent_id.get(str(current.id), set()))

    def get_space_children_string(self, space: SpaceRef) -> list[str]:
        return [child.name for child in self.get_space_children(space)]

    def get_spaces(self) -> list[Space]:
        """Return every space of every owner, in creation order."""

        with self._lock:
            return list(self._spaces_by_id.values())

    def get_spaces_string(self) -> list[str]:
        return [space.name for space in self.get_spaces()]

    def get_spaces_by_owner(self, owner: SpaceRef) -> list[Space]:
        owner_id = parse_uuid4(owner, field_name="owner")
        return [space for space in self.get_spaces() if space.owner == owner_id]

    def get_space_path(self, space: SpaceRef) -> list[str]:
        """Return the names from the root space down to ``space``."""

        with self._lock:
            return [s.name for s in self._lineage(self._lookup(space))]

    def get_tree(self, owner: SpaceRef) -> list[SpaceNode]:
        """Build the nested forest of ``owner``'s spaces, roots first."""

        owner_id = parse_uuid4(owner, field_name="owner")

        with self._lock:
            roots = [
                SpaceNode(space=s)
                for s in self._sorted(self._children_ids_by_parent_id.get(None, set()))
                if s.owner == owner_id
            ]
            # Explicit stack; chains can be deeper than the recursion limit
            stack: list[SpaceNode] = list(roots)
            while stack:
                node = stack.pop()
                kids = self._children_ids_by_parent_id.get(str(node.space.id), set())
                node.children = [SpaceNode(space=c) for c in self._sorted(kids)]
                stack.extend(node.children)
            return roots

    @staticmethod
    def equals(space1: Space, space2: Space) -> bool:
        """Structural similarity on ``(owner, name, space_type)``.

        Two distinct spaces with the same owner, name and type compare equal
        here; use ``id`` to test identity.
        """

        return (
            space1.owner == space2.owner
            and space1.name == space2.name
            and space1.space_type == space2.space_type
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._spaces_by_id)
