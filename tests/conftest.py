"""Shared fixtures for Homestash tests.

Store tests are plain offline tests. Integration tests use the ``hass`` and
``hass_ws_client`` fixtures from pytest-homeassistant-custom-component and
request ``setup_integration`` to load the custom component from this tree.
"""

import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path so ``custom_components`` is importable
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from custom_components.homestash.const import DOMAIN  # noqa: E402
from custom_components.homestash.spaces import SpaceHierarchy  # noqa: E402
from custom_components.homestash.users import UserRegistry  # noqa: E402
from pytest_homeassistant_custom_component.common import MockConfigEntry  # noqa: E402


@pytest.fixture
def users() -> UserRegistry:
    return UserRegistry()


@pytest.fixture
def alice(users: UserRegistry):
    return users.register_user("alice")


@pytest.fixture
def bob(users: UserRegistry):
    return users.register_user("bob")


@pytest.fixture
def spaces() -> SpaceHierarchy:
    return SpaceHierarchy()


@pytest.fixture
async def setup_integration(hass, enable_custom_integrations) -> MockConfigEntry:
    """Add and set up a Homestash config entry on the test ``hass``."""

    entry = MockConfigEntry(domain=DOMAIN, title="Homestash", data={})
    entry.add_to_hass(hass)
    assert await hass.config_entries.async_setup(entry.entry_id)
    await hass.async_block_till_done()
    return entry
