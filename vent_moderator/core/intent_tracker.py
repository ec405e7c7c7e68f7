"""
Intent Tracker for the vent moderation service.

Remembers, per user, how the next text message from that user should be
interpreted. The map lives in process memory only: a restart drops every
in-flight intent and the user has to tap the button again.
"""
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class IntentKind(str, Enum):
    AWAITING_VENT_TEXT = "awaiting_vent_text"
    AWAITING_COMMENT_TEXT = "awaiting_comment_text"


@dataclass(frozen=True)
class Intent:
    """What the next text message of a user is for."""
    kind: IntentKind
    vent_id: Optional[str] = None

    @classmethod
    def vent(cls) -> "Intent":
        return cls(IntentKind.AWAITING_VENT_TEXT)

    @classmethod
    def comment(cls, vent_id: str) -> "Intent":
        if not vent_id:
            raise ValueError("A comment intent needs the parent vent id")
        return cls(IntentKind.AWAITING_COMMENT_TEXT, vent_id)


class IntentTracker:
    """
    Keyed, overwrite-and-consume store of per-user intents.

    Safe to share between concurrently running handlers: every operation
    holds a lock for the duration of a single map access.
    """

    def __init__(self):
        self._intents: Dict[str, Intent] = {}
        self._lock = threading.Lock()

    def set_intent(self, user_id, intent: Intent) -> None:
        """
        Record `intent` for `user_id`, silently replacing any unconsumed one.

        Args:
            user_id: The user the intent belongs to.
            intent: The new intent.
        """
        key = str(user_id)
        with self._lock:
            previous = self._intents.get(key)
            self._intents[key] = intent
        if previous is not None and previous != intent:
            logger.debug(f"Intent for user {key} replaced: {previous.kind.value} -> {intent.kind.value}")

    def take_intent(self, user_id) -> Optional[Intent]:
        """
        Read and clear the intent of `user_id` in one step.

        Returns:
            The pending intent, or None if there is none.
        """
        with self._lock:
            return self._intents.pop(str(user_id), None)
