"""
Pydantic Data Transfer Objects (DTOs) for the vent moderation service.

These models carry vents and comments out of the store and between the
core components and the bot handlers.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class VentState(str, Enum):
    """Lifecycle state of a vent. Approved and rejected are terminal."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not VentState.PENDING


class Decision(str, Enum):
    """An admin decision on a pending vent."""
    APPROVE = "approve"
    REJECT = "reject"


class AuthorInfo(BaseModel):
    """
    Who sent a vent or comment.

    Built from the sender of an inbound message; only `user_id` is required.
    """
    user_id: str
    username: Optional[str] = None
    display_name: Optional[str] = None

    @classmethod
    def from_telegram_user(cls, user: Dict[str, Any]) -> "AuthorInfo":
        """Map a Telegram `User` object to an AuthorInfo."""
        name = f"{user.get('first_name') or ''} {user.get('last_name') or ''}".strip()
        return cls(
            user_id=str(user["id"]),
            username=user.get("username") or None,
            display_name=name or None,
        )

    @property
    def handle(self) -> str:
        return f"@{self.username}" if self.username else "no_username"


class VentDTO(BaseModel):
    """
    DTO for a vent.

    Mirrors VentORM.
    """
    id: str
    user_id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    text: str
    state: VentState
    public_number: Optional[int] = None
    channel_message_id: Optional[int] = None
    comment_count: int = Field(0, ge=0)
    created_at: datetime
    decided_at: Optional[datetime] = None
    decided_by: Optional[str] = None

    model_config = {"from_attributes": True}

    @property
    def is_published(self) -> bool:
        return self.channel_message_id is not None


class CommentDTO(BaseModel):
    """
    DTO for a comment.

    Mirrors CommentORM.
    """
    id: str
    vent_id: str
    user_id: str
    username: Optional[str] = None
    display_name: Optional[str] = None
    text: str
    created_at: datetime

    model_config = {"from_attributes": True}


class DecisionOutcome(BaseModel):
    """
    Result of an admin decision.

    `changed` is False when the vent was already in a terminal state and the
    call was acknowledged as a no-op.
    """
    vent: VentDTO
    changed: bool
    published: bool = False
