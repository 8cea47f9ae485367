"""Offline tests for the user registry.

Scenarios:
- Register issues a UUID v4 identity per unique username
- Duplicate and blank usernames are rejected without mutation
- Lookups by id and by username
"""

from __future__ import annotations

import uuid

import pytest
from custom_components.homestash.exceptions import ConflictError, NotFoundError, ValidationError


@pytest.mark.asyncio
async def test_register_and_lookup(users) -> None:
    user = users.register_user("  alice ")

    assert user.username == "alice"
    assert user.id.version == 4
    assert users.get_user(user.id) is user
    assert users.get_user(str(user.id)) is user
    assert users.get_user_name(user.id) == "alice"
    assert users.find_user("alice") is user
    assert users.find_user("carol") is None


@pytest.mark.asyncio
async def test_duplicate_username_rejected(users, alice) -> None:
    with pytest.raises(ConflictError):
        users.register_user("alice")
    with pytest.raises(ValidationError):
        users.register_user("")
    assert len(users) == 1


@pytest.mark.asyncio
async def test_listing(users, alice, bob) -> None:
    assert [u.id for u in users.get_users()] == [alice.id, bob.id]
    assert users.get_users_string() == ["alice", "bob"]


@pytest.mark.asyncio
async def test_unknown_user(users) -> None:
    with pytest.raises(NotFoundError):
        users.get_user(uuid.uuid4())
    with pytest.raises(NotFoundError):
        users.get_user("nobody")


@pytest.mark.asyncio
async def test_find_user_trims_like_register(users) -> None:
    user = users.register_user(" alice ")

    assert users.find_user(" alice ") is user
    assert users.find_user("alice") is user
