"""
Notification Dispatcher for the vent moderation service.

Every outbound message that follows a committed state change goes through
here. Delivery problems (the user blocked the bot, the API is down) are
logged and swallowed: they never undo or abort the change that triggered them.
"""
import logging
from typing import Any, Dict, Optional

from vent_moderator.core.errors import TransportError
from vent_moderator.transport.base import ChatTransport

logger = logging.getLogger(__name__)


class Notifier:
    """
    Best-effort wrapper around the chat transport.
    """

    def __init__(self, transport: ChatTransport):
        self._transport = transport

    async def notify(
        self,
        chat_id,
        text: str,
        reply_markup: Optional[Dict[str, Any]] = None,
    ) -> Optional[int]:
        """
        Attempts to deliver `text` to `chat_id`.

        Args:
            chat_id: User or channel to deliver to.
            text: HTML-formatted message text.
            reply_markup: Optional keyboard to attach.

        Returns:
            The id of the delivered message, or None if delivery failed.
        """
        try:
            return await self._transport.send_message(chat_id, text, reply_markup=reply_markup)
        except TransportError as e:
            logger.warning(f"Could not deliver message to {chat_id}: {e.message}")
        except Exception as e:
            logger.warning(f"Unexpected error delivering message to {chat_id}: {e}", exc_info=True)
        return None

    async def refresh_buttons(
        self,
        chat_id,
        message_id: int,
        reply_markup: Optional[Dict[str, Any]],
    ) -> bool:
        """
        Attempts to replace the inline keyboard of an already delivered message.

        Returns:
            True if the keyboard was updated.
        """
        try:
            await self._transport.edit_message_reply_markup(chat_id, message_id, reply_markup)
            return True
        except TransportError as e:
            logger.warning(f"Could not update buttons of message {message_id} in {chat_id}: {e.message}")
        except Exception as e:
            logger.warning(f"Unexpected error updating message {message_id} in {chat_id}: {e}", exc_info=True)
        return False

    async def acknowledge(self, callback_query_id: str, text: Optional[str] = None, show_alert: bool = False) -> bool:
        """Attempts to answer a button press so the client stops its spinner."""
        try:
            await self._transport.answer_callback_query(callback_query_id, text=text, show_alert=show_alert)
            return True
        except TransportError as e:
            logger.warning(f"Could not answer callback query {callback_query_id}: {e.message}")
        except Exception as e:
            logger.warning(f"Unexpected error answering callback query {callback_query_id}: {e}", exc_info=True)
        return False
