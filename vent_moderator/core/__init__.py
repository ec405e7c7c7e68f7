"""
Core components for the vent moderation service.
"""

from .errors import (
    NotFoundError,
    StorageError,
    TransportError,
    UnauthorizedError,
    ValidationError,
    VentModeratorError,
)
from .intent_tracker import Intent, IntentKind, IntentTracker
from .sequence_allocator import SequenceAllocator
from .item_store import ItemStore
from .notifier import Notifier
from .moderation import ModerationService
from .comments import CommentService

__all__ = [
    "CommentService",
    "Intent",
    "IntentKind",
    "IntentTracker",
    "ItemStore",
    "ModerationService",
    "NotFoundError",
    "Notifier",
    "SequenceAllocator",
    "StorageError",
    "TransportError",
    "UnauthorizedError",
    "ValidationError",
    "VentModeratorError",
]
