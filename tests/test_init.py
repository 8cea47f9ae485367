"""Tests for integration setup and unload."""

from __future__ import annotations

import pytest
from custom_components.homestash import STORE_KEYS, create_stores
from custom_components.homestash.const import DOMAIN
from custom_components.homestash.spaces import SpaceHierarchy
from homeassistant.config_entries import ConfigEntryState


@pytest.mark.asyncio
async def test_create_stores_are_independent() -> None:
    """Each call builds a fresh set of stores."""

    first = create_stores()
    second = create_stores()

    assert set(first) == set(STORE_KEYS)
    assert isinstance(first["spaces"], SpaceHierarchy)
    assert all(first[key] is not second[key] for key in STORE_KEYS)


@pytest.mark.asyncio
async def test_setup_entry_initializes_stores(hass, setup_integration) -> None:
    """Setting up the entry populates hass.data and registers commands."""

    assert setup_integration.state is ConfigEntryState.LOADED
    bucket = hass.data[DOMAIN]
    for key in STORE_KEYS:
        assert key in bucket
        assert len(bucket[key]) == 0
    assert bucket["ws_registered"] is True


@pytest.mark.asyncio
async def test_unload_entry_drops_stores(hass, setup_integration) -> None:
    """Unloading removes the stores; a reload starts empty."""

    hass.data[DOMAIN]["users"].register_user("alice")

    assert await hass.config_entries.async_unload(setup_integration.entry_id)
    await hass.async_block_till_done()

    assert setup_integration.state is ConfigEntryState.NOT_LOADED
    assert all(key not in hass.data[DOMAIN] for key in STORE_KEYS)

    assert await hass.config_entries.async_setup(setup_integration.entry_id)
    await hass.async_block_till_done()
    assert len(hass.data[DOMAIN]["users"]) == 0
