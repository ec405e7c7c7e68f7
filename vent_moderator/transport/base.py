"""Defines the protocol the core components expect from a chat transport."""

from typing import Any, Dict, Optional, Protocol


class ChatTransport(Protocol):
    """Outbound side of the chat platform."""

    async def send_message(
        self,
        chat_id: Any,
        text: str,
        reply_markup: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Delivers a message and returns its message id."""
        ...

    async def edit_message_reply_markup(
        self,
        chat_id: Any,
        message_id: int,
        reply_markup: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Replaces (or with None, removes) the inline keyboard of a delivered message."""
        ...

    async def answer_callback_query(
        self,
        callback_query_id: str,
        text: Optional[str] = None,
        show_alert: bool = False,
    ) -> None:
        """Acknowledges a button press."""
        ...
