"""WebSocket command handlers for Homestash.

Maps every concept action and query 1:1 onto a command
``homestash/<concept>/<op>``. Adheres to the envelope: input
{id, type, ...payload}, output result_message/error_message.

This layer is the only caller that spans concepts: it resolves the ``owner``
against the user registry and fetches items/spaces before handing them to
the bundle and location-log stores, which never look each other up.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

import voluptuous as vol
from homeassistant.components import websocket_api
from homeassistant.core import HomeAssistant

from .bundles import BundleManager
from .const import DOMAIN, INTEGRATION_VERSION
from .exceptions import (
    ConflictError,
    CycleError,
    HomestashError,
    NameConflictError,
    NotEmptyError,
    NotFoundError,
    OwnershipError,
    ValidationError,
)
from .items import ItemRegistry
from .location_log import LocationLogStore
from .models import Bundle, Item, LocationLog, Space, SpaceNode, User
from .spaces import SpaceHierarchy
from .users import UserRegistry

LOGGER = logging.getLogger(__name__)


def _bucket(hass: HomeAssistant) -> dict[str, Any]:
    bucket = hass.data.get(DOMAIN) or {}
    if "spaces" not in bucket:
        raise HomestashError("stores not initialized; run integration setup")
    return bucket


def _users(hass: HomeAssistant) -> UserRegistry:
    return _bucket(hass)["users"]


def _items(hass: HomeAssistant) -> ItemRegistry:
    return _bucket(hass)["items"]


def _spaces(hass: HomeAssistant) -> SpaceHierarchy:
    return _bucket(hass)["spaces"]


def _bundles(hass: HomeAssistant) -> BundleManager:
    return _bucket(hass)["bundles"]


def _logs(hass: HomeAssistant) -> LocationLogStore:
    return _bucket(hass)["location_logs"]


def _owner(hass: HomeAssistant, msg: dict) -> User:
    """Resolve the message's ``owner`` to a registered user."""

    return _users(hass).get_user(msg["owner"])


def _error_code(exc: Exception) -> str:
    # Subclasses first: NameConflictError is a ConflictError
    if isinstance(exc, NameConflictError):
        return "name_conflict"
    if isinstance(exc, ConflictError):
        return "conflict"
    if isinstance(exc, ValidationError):
        return "validation_error"
    if isinstance(exc, NotFoundError):
        return "not_found"
    if isinstance(exc, OwnershipError):
        return "ownership_mismatch"
    if isinstance(exc, NotEmptyError):
        return "not_empty"
    if isinstance(exc, CycleError):
        return "cycle_rejected"
    return "unknown_error"


def _error_message(_id: int, exc: Exception, *, context: dict[str, Any]):
    level = logging.ERROR if isinstance(exc, ConflictError) else logging.WARNING
    LOGGER.log(level, str(exc), extra={"domain": DOMAIN, **(context or {})})
    return websocket_api.error_message(_id, _error_code(exc), str(exc))


# -----------------------------
# Unified exception handling for WS handlers
# -----------------------------

_WSHandler = Callable[[HomeAssistant, Any, dict], Awaitable[Any]]


def _context_from_msg(op: str, msg: dict, fields: tuple[str, ...]) -> dict[str, Any]:
    payload: dict[str, Any] = {"op": op}
    for field in fields:
        if field not in msg:
            continue
        # Avoid reserved LogRecord key 'name'
        key = "ctx_name" if field == "name" else field
        payload[key] = msg.get(field)
    return payload


def ws_guard(op: str, context_fields: tuple[str, ...] = ()) -> Callable[[_WSHandler], _WSHandler]:
    """Decorator to map domain exceptions to WS error envelopes.

    Builds a structured logging context from selected fields in the incoming
    message and sends ``error_message(id, code, message)`` on the connection.
    """

    def decorator(func: _WSHandler) -> _WSHandler:
        async def wrapper(hass: HomeAssistant, conn, msg):  # type: ignore[override]
            try:
                return await func(hass, conn, msg)
            except HomestashError as exc:
                ctx = _context_from_msg(op, msg, context_fields)
                conn.send_message(_error_message(msg.get("id", 0), exc, context=ctx))
                return None

        return wrapper

    return decorator


def _send_result(conn, msg: dict, result: Any) -> None:
    conn.send_message(websocket_api.result_message(msg.get("id", 0), result))


# -----------------------------
# Serialization helpers
# -----------------------------


def _serialize_user(user: User) -> dict[str, Any]:
    return {"id": str(user.id), "username": user.username}


def _serialize_item(item: Item) -> dict[str, Any]:
    return {
        "id": str(item.id),
        "owner": str(item.owner),
        "name": item.name,
        "description": item.description,
        "category": item.category,
    }


def _serialize_space(space: Space) -> dict[str, Any]:
    return {
        "id": str(space.id),
        "owner": str(space.owner),
        "name": space.name,
        "space_type": space.space_type,
        "parent_id": str(space.parent_id) if space.parent_id is not None else None,
    }


def _serialize_node(node: SpaceNode) -> dict[str, Any]:
    """Serialize a space subtree without recursion."""

    result: dict[str, Any] = {**_serialize_space(node.space), "children": []}
    stack: list[tuple[SpaceNode, dict[str, Any]]] = [(node, result)]
    while stack:
        current, payload = stack.pop()
        for child in current.children:
            child_payload: dict[str, Any] = {**_serialize_space(child.space), "children": []}
            payload["children"].append(child_payload)
            stack.append((child, child_payload))
    return result


def _serialize_bundle(bundle: Bundle) -> dict[str, Any]:
    return {
        "id": str(bundle.id),
        "owner": str(bundle.owner),
        "name": bundle.name,
        "members": [str(m) for m in bundle.members],
    }


def _serialize_log(log: LocationLog) -> dict[str, Any]:
    return {
        "id": str(log.id),
        "item_id": str(log.item_id),
        "owner": str(log.owner),
        "current_space_id": str(log.current_space_id),
        "history": [str(s) for s in log.history],
    }


# -----------------------------
# Utility commands
# -----------------------------


@websocket_api.websocket_command({vol.Required("type"): "homestash/version"})
@websocket_api.async_response
async def ws_version(hass: HomeAssistant, conn, msg):
    _send_result(conn, msg, {"integration_version": INTEGRATION_VERSION})


@websocket_api.websocket_command({vol.Required("type"): "homestash/stats"})
@websocket_api.async_response
@ws_guard("stats")
async def ws_stats(hass: HomeAssistant, conn, msg):
    bucket = _bucket(hass)
    counts = {
        "users_total": len(bucket["users"]),
        "items_total": len(bucket["items"]),
        "spaces_total": len(bucket["spaces"]),
        "bundles_total": len(bucket["bundles"]),
        "location_logs_total": len(bucket["location_logs"]),
    }
    _send_result(conn, msg, counts)


# -----------------------------
# Users
# -----------------------------


@websocket_api.websocket_command(
    {vol.Required("type"): "homestash/user/register", vol.Required("username"): str}
)
@websocket_api.async_response
@ws_guard("user_register", ("username",))
async def ws_user_register(hass: HomeAssistant, conn, msg):
    user = _users(hass).register_user(msg["username"])
    _send_result(conn, msg, _serialize_user(user))


@websocket_api.websocket_command(
    {vol.Required("type"): "homestash/user/get", vol.Required("user_id"): str}
)
@websocket_api.async_response
@ws_guard("user_get", ("user_id",))
async def ws_user_get(hass: HomeAssistant, conn, msg):
    _send_result(conn, msg, _serialize_user(_users(hass).get_user(msg["user_id"])))


@websocket_api.websocket_command({vol.Required("type"): "homestash/user/list"})
@websocket_api.async_response
@ws_guard("user_list")
async def ws_user_list(hass: HomeAssistant, conn, msg):
    _send_result(conn, msg, [_serialize_user(u) for u in _users(hass).get_users()])


@websocket_api.websocket_command({vol.Required("type"): "homestash/user/names"})
@websocket_api.async_response
@ws_guard("user_names")
async def ws_user_names(hass: HomeAssistant, conn, msg):
    _send_result(conn, msg, _users(hass).get_users_string())


# -----------------------------
# Items
# -----------------------------


@websocket_api.websocket_command(
    {
        vol.Required("type"): "homestash/item/create",
        vol.Required("owner"): str,
        vol.Required("name"): str,
        vol.Optional("description", default=""): str,
        vol.Optional("category", default=""): str,
    }
)
@websocket_api.async_response
@ws_guard("item_create", ("owner", "name"))
async def ws_item_create(hass: HomeAssistant, conn, msg):
    owner = _owner(hass, msg)
    item = _items(hass).create_item(
        owner.id, msg["name"], description=msg["description"], category=msg["category"]
    )
    _send_result(conn, msg, _serialize_item(item))


@websocket_api.websocket_command(
    {vol.Required("type"): "homestash/item/get", vol.Required("item_id"): str}
)
@websocket_api.async_response
@ws_guard("item_get", ("item_id",))
async def ws_item_get(hass: HomeAssistant, conn, msg):
    _send_result(conn, msg, _serialize_item(_items(hass).get_item(msg["item_id"])))


@websocket_api.websocket_command(
    {
        vol.Required("type"): "homestash/item/update",
        vol.Required("owner"): str,
        vol.Required("item_id"): str,
        vol.Optional("name"): str,
        vol.Optional("description"): str,
        vol.Optional("category"): str,
    }
)
@websocket_api.async_response
@ws_guard("item_update", ("owner", "item_id", "name"))
async def ws_item_update(hass: HomeAssistant, conn, msg):
    owner = _owner(hass, msg)
    item = _items(hass).update_item_details(
        owner.id,
        msg["item_id"],
        name=msg.get("name"),
        description=msg.get("description"),
        category=msg.get("category"),
    )
    _send_result(conn, msg, _serialize_item(item))


@websocket_api.websocket_command(
    {
        vol.Required("type"): "homestash/item/delete",
        vol.Required("owner"): str,
        vol.Required("item_id"): str,
    }
)
@websocket_api.async_response
@ws_guard("item_delete", ("owner", "item_id"))
async def ws_item_delete(hass: HomeAssistant, conn, msg):
    owner = _owner(hass, msg)
    items = _items(hass)
    item = items.get_item(msg["item_id"])
    items.delete_item(owner.id, item.id)
    # Deleted items must not linger in bundles or keep a location log
    _bundles(hass).discard_item(item.id)
    logs = _logs(hass)
    if logs.get_item_log(item) is not None:
        logs.delete_log(item)
    _send_result(conn, msg, None)


@websocket_api.websocket_command({vol.Required("type"): "homestash/item/list"})
@websocket_api.async_response
@ws_guard("item_list")
async def ws_item_list(hass: HomeAssistant, conn, msg):
    _send_result(conn, msg, [_serialize_item(it) for it in _items(hass).get_items()])


@websocket_api.websocket_command({vol.Required("type"): "homestash/item/names"})
@websocket_api.async_response
@ws_guard("item_names")
async def ws_item_names(hass: HomeAssistant, conn, msg):
    _send_result(conn, msg, _items(hass).get_items_string())


@websocket_api.websocket_command(
    {vol.Required("type"): "homestash/item/by_owner", vol.Required("owner"): str}
)
@websocket_api.async_response
@ws_guard("item_by_owner", ("owner",))
async def ws_item_by_owner(hass: HomeAssistant, conn, msg):
    owner = _owner(hass, msg)
    _send_result(conn, msg, [_serialize_item(it) for it in _items(hass).get_items_by_user(owner.id)])


# -----------------------------
# Spaces
# -----------------------------


@websocket_api.websocket_command(
    {
        vol.Required("type"): "homestash/space/create",
        vol.Required("owner"): str,
        vol.Required("name"): str,
        vol.Optional("space_type", default=""): str,
        vol.Optional("parent_id"): vol.Any(str, None),
    }
)
@websocket_api.async_response
@ws_guard("space_create", ("owner", "name", "parent_id"))
async def ws_space_create(hass: HomeAssistant, conn, msg):
    owner = _owner(hass, msg)
    space = _spaces(hass).create_space(
        owner.id, msg["name"], msg["space_type"], msg.get("parent_id")
    )
    _send_result(conn, msg, _serialize_space(space))


@websocket_api.websocket_command(
    {vol.Required("type"): "homestash/space/get", vol.Required("space_id"): str}
)
@websocket_api.async_response
@ws_guard("space_get", ("space_id",))
async def ws_space_get(hass: HomeAssistant, conn, msg):
    _send_result(conn, msg, _serialize_space(_spaces(hass).get_space(msg["space_id"])))


@websocket_api.websocket_command(
    {
        vol.Required("type"): "homestash/space/move",
        vol.Required("owner"): str,
        vol.Required("space_id"): str,
        vol.Required("new_parent_id"): str,
    }
)
@websocket_api.async_response
@ws_guard("space_move", ("owner", "space_id", "new_parent_id"))
async def ws_space_move(hass: HomeAssistant, conn, msg):
    owner = _owner(hass, msg)
    space = _spaces(hass).move_space(owner.id, msg["space_id"], msg["new_parent_id"])
    _send_result(conn, msg, _serialize_space(space))


@websocket_api.websocket_command(
    {
        vol.Required("type"): "homestash/space/rename",
        vol.Required("owner"): str,
        vol.Required("space_id"): str,
        vol.Required("new_name"): str,
    }
)
@websocket_api.async_response
@ws_guard("space_rename", ("owner", "space_id", "new_name"))
async def ws_space_rename(hass: HomeAssistant, conn, msg):
    owner = _owner(hass, msg)
    space = _spaces(hass).rename_space(owner.id, msg["space_id"], msg["new_name"])
    _send_result(conn, msg, _serialize_space(space))


@websocket_api.websocket_command(
    {
        vol.Required("type"): "homestash/space/delete",
        vol.Required("owner"): str,
        vol.Required("space_id"): str,
    }
)
@websocket_api.async_response
@ws_guard("space_delete", ("owner", "space_id"))
async def ws_space_delete(hass: HomeAssistant, conn, msg):
    owner = _owner(hass, msg)
    _spaces(hass).delete_space(owner.id, msg["space_id"])
    _send_result(conn, msg, None)


@websocket_api.websocket_command(
    {vol.Required("type"): "homestash/space/parent", vol.Required("space_id"): str}
)
@websocket_api.async_response
@ws_guard("space_parent", ("space_id",))
async def ws_space_parent(hass: HomeAssistant, conn, msg):
    parent = _spaces(hass).get_space_parent(msg["space_id"])
    _send_result(conn, msg, _serialize_space(parent) if parent is not None else None)


@websocket_api.websocket_command(
    {vol.Required("type"): "homestash/space/children", vol.Required("space_id"): str}
)
@websocket_api.async_response
@ws_guard("space_children", ("space_id",))
async def ws_space_children(hass: HomeAssistant, conn, msg):
    children = _spaces(hass).get_space_children(msg["space_id"])
    _send_result(conn, msg, [_serialize_space(c) for c in children])


@websocket_api.websocket_command(
    {vol.Required("type"): "homestash/space/children_names", vol.Required("space_id"): str}
)
@websocket_api.async_response
@ws_guard("space_children_names", ("space_id",))
async def ws_space_children_names(hass: HomeAssistant, conn, msg):
    _send_result(conn, msg, _spaces(hass).get_space_children_string(msg["space_id"]))


@websocket_api.websocket_command(
    {vol.Required("type"): "homestash/space/path", vol.Required("space_id"): str}
)
@websocket_api.async_response
@ws_guard("space_path", ("space_id",))
async def ws_space_path(hass: HomeAssistant, conn, msg):
    names = _spaces(hass).get_space_path(msg["space_id"])
    _send_result(conn, msg, {"name_path": names, "display_path": " / ".join(names)})


@websocket_api.websocket_command({vol.Required("type"): "homestash/space/list"})
@websocket_api.async_response
@ws_guard("space_list")
async def ws_space_list(hass: HomeAssistant, conn, msg):
    _send_result(conn, msg, [_serialize_space(s) for s in _spaces(hass).get_spaces()])


@websocket_api.websocket_command({vol.Required("type"): "homestash/space/names"})
@websocket_api.async_response
@ws_guard("space_names")
async def ws_space_names(hass: HomeAssistant, conn, msg):
    _send_result(conn, msg, _spaces(hass).get_spaces_string())


@websocket_api.websocket_command(
    {vol.Required("type"): "homestash/space/tree", vol.Required("owner"): str}
)
@websocket_api.async_response
@ws_guard("space_tree", ("owner",))
async def ws_space_tree(hass: HomeAssistant, conn, msg):
    owner = _owner(hass, msg)
    _send_result(conn, msg, [_serialize_node(n) for n in _spaces(hass).get_tree(owner.id)])


@websocket_api.websocket_command(
    {
        vol.Required("type"): "homestash/space/equals",
        vol.Required("space_id"): str,
        vol.Required("other_space_id"): str,
    }
)
@websocket_api.async_response
@ws_guard("space_equals", ("space_id", "other_space_id"))
async def ws_space_equals(hass: HomeAssistant, conn, msg):
    spaces = _spaces(hass)
    first = spaces.get_space(msg["space_id"])
    second = spaces.get_space(msg["other_space_id"])
    _send_result(conn, msg, {"equal": spaces.equals(first, second)})


# -----------------------------
# Bundles
# -----------------------------


@websocket_api.websocket_command(
    {
        vol.Required("type"): "homestash/bundle/create",
        vol.Required("owner"): str,
        vol.Required("name"): str,
    }
)
@websocket_api.async_response
@ws_guard("bundle_create", ("owner", "name"))
async def ws_bundle_create(hass: HomeAssistant, conn, msg):
    owner = _owner(hass, msg)
    _send_result(conn, msg, _serialize_bundle(_bundles(hass).create_bundle(owner.id, msg["name"])))


@websocket_api.websocket_command(
    {
        vol.Required("type"): "homestash/bundle/delete",
        vol.Required("owner"): str,
        vol.Required("name"): str,
    }
)
@websocket_api.async_response
@ws_guard("bundle_delete", ("owner", "name"))
async def ws_bundle_delete(hass: HomeAssistant, conn, msg):
    owner = _owner(hass, msg)
    _bundles(hass).delete_bundle(owner.id, msg["name"])
    _send_result(conn, msg, None)


@websocket_api.websocket_command(
    {
        vol.Required("type"): "homestash/bundle/get",
        vol.Required("owner"): str,
        vol.Required("name"): str,
    }
)
@websocket_api.async_response
@ws_guard("bundle_get", ("owner", "name"))
async def ws_bundle_get(hass: HomeAssistant, conn, msg):
    owner = _owner(hass, msg)
    _send_result(conn, msg, _serialize_bundle(_bundles(hass).get_bundle(owner.id, msg["name"])))


@websocket_api.websocket_command(
    {vol.Required("type"): "homestash/bundle/list", vol.Optional("owner"): str}
)
@websocket_api.async_response
@ws_guard("bundle_list", ("owner",))
async def ws_bundle_list(hass: HomeAssistant, conn, msg):
    bundles = _bundles(hass)
    if "owner" in msg:
        result = bundles.get_bundles_by_owner(_owner(hass, msg).id)
    else:
        result = bundles.get_bundles()
    _send_result(conn, msg, [_serialize_bundle(b) for b in result])


@websocket_api.websocket_command(
    {
        vol.Required("type"): "homestash/bundle/add_item",
        vol.Required("owner"): str,
        vol.Required("item_id"): str,
        vol.Required("bundle_name"): str,
    }
)
@websocket_api.async_response
@ws_guard("bundle_add_item", ("owner", "item_id", "bundle_name"))
async def ws_bundle_add_item(hass: HomeAssistant, conn, msg):
    owner = _owner(hass, msg)
    item = _items(hass).get_item(msg["item_id"])
    if item.owner != owner.id:
        raise OwnershipError("item belongs to a different owner")
    bundle = _bundles(hass).add_item_to_bundle(owner.id, item.id, msg["bundle_name"])
    _send_result(conn, msg, _serialize_bundle(bundle))


@websocket_api.websocket_command(
    {
        vol.Required("type"): "homestash/bundle/remove_item",
        vol.Required("owner"): str,
        vol.Required("item_id"): str,
        vol.Required("bundle_name"): str,
    }
)
@websocket_api.async_response
@ws_guard("bundle_remove_item", ("owner", "item_id", "bundle_name"))
async def ws_bundle_remove_item(hass: HomeAssistant, conn, msg):
    owner = _owner(hass, msg)
    bundle = _bundles(hass).remove_item_from_bundle(owner.id, msg["item_id"], msg["bundle_name"])
    _send_result(conn, msg, _serialize_bundle(bundle))


# -----------------------------
# Location logs
# -----------------------------


def _item_and_space(hass: HomeAssistant, msg: dict) -> tuple[Item, Space]:
    return _items(hass).get_item(msg["item_id"]), _spaces(hass).get_space(msg["space_id"])


@websocket_api.websocket_command(
    {
        vol.Required("type"): "homestash/location_log/create",
        vol.Required("item_id"): str,
        vol.Required("space_id"): str,
    }
)
@websocket_api.async_response
@ws_guard("location_log_create", ("item_id", "space_id"))
async def ws_location_log_create(hass: HomeAssistant, conn, msg):
    item, space = _item_and_space(hass, msg)
    _send_result(conn, msg, _serialize_log(_logs(hass).create_log(item, space)))


@websocket_api.websocket_command(
    {
        vol.Required("type"): "homestash/location_log/place_item",
        vol.Required("item_id"): str,
        vol.Required("space_id"): str,
    }
)
@websocket_api.async_response
@ws_guard("location_log_place_item", ("item_id", "space_id"))
async def ws_location_log_place_item(hass: HomeAssistant, conn, msg):
    item, space = _item_and_space(hass, msg)
    _send_result(conn, msg, _serialize_log(_logs(hass).place_item(item, space)))


@websocket_api.websocket_command(
    {vol.Required("type"): "homestash/location_log/delete", vol.Required("item_id"): str}
)
@websocket_api.async_response
@ws_guard("location_log_delete", ("item_id",))
async def ws_location_log_delete(hass: HomeAssistant, conn, msg):
    _logs(hass).delete_log(_items(hass).get_item(msg["item_id"]))
    _send_result(conn, msg, None)


@websocket_api.websocket_command(
    {vol.Required("type"): "homestash/location_log/get", vol.Required("item_id"): str}
)
@websocket_api.async_response
@ws_guard("location_log_get", ("item_id",))
async def ws_location_log_get(hass: HomeAssistant, conn, msg):
    log = _logs(hass).get_item_log(_items(hass).get_item(msg["item_id"]))
    _send_result(conn, msg, _serialize_log(log) if log is not None else None)


@websocket_api.websocket_command({vol.Required("type"): "homestash/location_log/list"})
@websocket_api.async_response
@ws_guard("location_log_list")
async def ws_location_log_list(hass: HomeAssistant, conn, msg):
    _send_result(conn, msg, [_serialize_log(log) for log in _logs(hass).get_logs()])


# -----------------------------
# Registration
# -----------------------------


HANDLERS = (
    ws_version,
    ws_stats,
    ws_user_register,
    ws_user_get,
    ws_user_list,
    ws_user_names,
    ws_item_create,
    ws_item_get,
    ws_item_update,
    ws_item_delete,
    ws_item_list,
    ws_item_names,
    ws_item_by_owner,
    ws_space_create,
    ws_space_get,
    ws_space_move,
    ws_space_rename,
    ws_space_delete,
    ws_space_parent,
    ws_space_children,
    ws_space_children_names,
    ws_space_path,
    ws_space_list,
    ws_space_names,
    ws_space_tree,
    ws_space_equals,
    ws_bundle_create,
    ws_bundle_delete,
    ws_bundle_get,
    ws_bundle_list,
    ws_bundle_add_item,
    ws_bundle_remove_item,
    ws_location_log_create,
    ws_location_log_place_item,
    ws_location_log_delete,
    ws_location_log_get,
    ws_location_log_list,
)


def setup(hass: HomeAssistant) -> None:
    # Idempotent while the entry is loaded; unload clears the flag
    bucket = hass.data.setdefault(DOMAIN, {})
    if bucket.get("ws_registered"):
        return

    for handler in HANDLERS:
        websocket_api.async_register_command(hass, handler)

    bucket["ws_registered"] = True
