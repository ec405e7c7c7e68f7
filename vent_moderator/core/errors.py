"""
Error taxonomy for the vent moderation service.

Bot handlers map each kind to a user-visible reply; only StorageError and
TransportError wrap an underlying library exception.
"""

from typing import Optional


class VentModeratorError(Exception):
    """Base class for every error raised by the core components."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationError(VentModeratorError):
    """Submitted text is empty. Nothing was stored."""


class NotFoundError(VentModeratorError):
    """A vent id did not resolve."""

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Vent not found: {item_id}")


class UnauthorizedError(VentModeratorError):
    """A non-admin attempted an admin-only action."""

    def __init__(self, actor_id: str):
        self.actor_id = actor_id
        super().__init__(f"Actor {actor_id} is not allowed to moderate")


class StorageError(VentModeratorError):
    """A durable-store call failed. The open transaction was rolled back."""


class TransportError(VentModeratorError):
    """Delivery through the chat transport failed."""

    def __init__(self, message: str, error_code: Optional[int] = None):
        self.error_code = error_code
        super().__init__(message)
