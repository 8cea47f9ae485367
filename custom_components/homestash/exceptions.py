"""Exception taxonomy for the Homestash integration.

Defines a small hierarchy of exceptions raised by the concept stores and
mapped to error codes by the WebSocket API. These extend Home Assistant's
HomeAssistantError to ensure consistent behavior when surfaced through the
platform.

Every store checks its preconditions before writing, so catching one of these
means the store was left unchanged. ``str(exception)`` returns the message
unchanged.
"""

from __future__ import annotations

from homeassistant.exceptions import HomeAssistantError


class HomestashError(HomeAssistantError):
    """Base exception for Homestash-related errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ValidationError(HomestashError):
    """Raised when input payloads fail validation (e.g., empty names)."""


class NotFoundError(HomestashError):
    """Raised when a referenced record does not exist."""


class OwnershipError(HomestashError):
    """Raised when a record exists but belongs to a different owner."""


class ConflictError(HomestashError):
    """Raised when an operation conflicts with current state (e.g., duplicates)."""


class NameConflictError(ConflictError):
    """Raised when a name collides with an existing sibling or owned record."""


class NotEmptyError(HomestashError):
    """Raised when deleting a space that still has child spaces."""


class CycleError(HomestashError):
    """Raised when a move would place a space inside its own subtree."""
