"""In-memory user registry for Homestash.

Maps unique usernames to opaque user identities. The ``User.id`` issued here
is the ``owner`` value every other store checks against; those stores never
call back into the registry, callers resolve users first.
"""

from __future__ import annotations

import logging
import uuid

from .exceptions import ConflictError, NotFoundError
from .models import User, new_uuid4, record_key, validate_name

LOGGER = logging.getLogger(__name__)


class UserRegistry:
    """Registry of users keyed by id with a username index."""

    def __init__(self) -> None:
        self._users_by_id: dict[str, User] = {}
        self._user_id_by_username: dict[str, str] = {}

    def register_user(self, username: str) -> User:
        username = validate_name(username, field_name="username")
        if username in self._user_id_by_username:
            raise ConflictError("user with username already exists")
        user = User(id=new_uuid4(), username=username)
        self._users_by_id[str(user.id)] = user
        self._user_id_by_username[username] = str(user.id)
        LOGGER.debug(
            "User registered",
            extra={"domain": "homestash", "op": "register_user", "user_id": str(user.id)},
        )
        return user

    def get_user(self, user_id: str | uuid.UUID) -> User:
        user = self._users_by_id.get(record_key(user_id, kind="user"))
        if user is None:
            raise NotFoundError("user not found")
        return user

    def find_user(self, username: str) -> User | None:
        key = self._user_id_by_username.get(username.strip())
        return self._users_by_id[key] if key is not None else None

    def get_user_name(self, user_id: str | uuid.UUID) -> str:
        return self.get_user(user_id).username

    def get_users(self) -> list[User]:
        return list(self._users_by_id.values())

    def get_users_string(self) -> list[str]:
        return [user.username for user in self._users_by_id.values()]

    def __len__(self) -> int:
        return len(self._users_by_id)
