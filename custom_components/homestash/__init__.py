"""Homestash integration bootstrap.

This module initializes the integration and sets up one independent set of
concept stores (users, items, spaces, bundles, location logs) in hass.data.
Stores are in-memory only; their contents live as long as the config entry.
"""

from __future__ import annotations

import logging
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers import config_validation as cv

from . import ws as ws_mod
from .bundles import BundleManager
from .const import DOMAIN
from .items import ItemRegistry
from .location_log import LocationLogStore
from .spaces import SpaceHierarchy
from .users import UserRegistry

LOGGER = logging.getLogger(__name__)

STORE_KEYS: tuple[str, ...] = ("users", "items", "spaces", "bundles", "location_logs")

# This integration is config-entry only; no YAML configuration is accepted.
CONFIG_SCHEMA = cv.config_entry_only_config_schema(DOMAIN)


def create_stores() -> dict[str, Any]:
    """Build a fresh, independent set of concept stores."""

    return {
        "users": UserRegistry(),
        "items": ItemRegistry(),
        "spaces": SpaceHierarchy(),
        "bundles": BundleManager(),
        "location_logs": LocationLogStore(),
    }


async def async_setup(hass: HomeAssistant, _config: dict) -> bool:
    """Set up the Homestash domain at Home Assistant startup.

    Initializes an empty domain bucket in hass.data with no side effects.
    """
    if DOMAIN not in hass.data:
        hass.data[DOMAIN] = {}
    return True


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Homestash from a config entry."""
    bucket = hass.data.setdefault(DOMAIN, {})
    bucket.update(create_stores())

    # Register WebSocket commands
    ws_mod.setup(hass)

    LOGGER.debug(
        "Homestash stores initialized",
        extra={"domain": DOMAIN, "op": "setup_entry", "entry_id": entry.entry_id},
    )
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry.

    Drops the in-memory stores and the registration flag so a reload starts
    from empty stores and registers commands again.
    """

    bucket = hass.data.get(DOMAIN) or {}
    for key in STORE_KEYS:
        bucket.pop(key, None)
    bucket.pop("ws_registered", None)

    LOGGER.debug(
        "Homestash stores dropped",
        extra={"domain": DOMAIN, "op": "unload_entry", "entry_id": entry.entry_id},
    )
    return True
