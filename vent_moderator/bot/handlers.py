"""
Inbound update routing for the vent bot.

Turns Telegram updates (messages and button presses) into calls on the core
services and replies to the user. Error kinds from the core are mapped to
short replies here; nothing below this layer talks to users directly.
"""
import logging
from typing import Any, Dict, Optional

from vent_moderator.core.comments import CommentService
from vent_moderator.core.errors import NotFoundError, StorageError, UnauthorizedError, ValidationError
from vent_moderator.core.intent_tracker import Intent, IntentKind, IntentTracker
from vent_moderator.core.moderation import ModerationService
from vent_moderator.core.notifier import Notifier
from vent_moderator.models.dtos import AuthorInfo, Decision
from vent_moderator.transport import formatting
from vent_moderator.transport.keyboards import (
    ACTION_ADD_COMMENT,
    ACTION_APPROVE,
    ACTION_BROWSE,
    ACTION_REJECT,
    VENT_NOW_LABEL,
    comment_menu_buttons,
    decision_buttons,
    main_keyboard,
    parse_callback,
    parse_start_payload,
)

logger = logging.getLogger(__name__)

WELCOME_TEXT = '👋 Welcome to AMU Vent!\nTap "🗣️ Vent Now" to send your anonymous vent.'
COMPOSE_VENT_TEXT = "📝 Type your vent and send, it will go through a review before being posted."
VENT_RECEIVED_TEXT = "✅ Vent received! Sent to admin for review."
COMMENT_ADDED_TEXT = "✅ Your comment has been added!"
COMPOSE_COMMENT_TEXT = "✍️ Send your comment now."
EMPTY_TEXT = "✏️ Your message was empty, nothing was sent."
UNKNOWN_TEXT = '❌ Unknown message. Use "🗣️ Vent Now" to start.'
POST_NOT_FOUND_TEXT = "Post not found."
NO_COMMENTS_TEXT = "No comments yet."
NO_PENDING_TEXT = "No pending vents."
RETRY_LATER_TEXT = "Something went wrong. Try again."


def update_actor_id(update: Dict[str, Any]) -> Optional[str]:
    """Chat id of the user behind an update, if any."""
    for key in ("callback_query", "message"):
        sender = (update.get(key) or {}).get("from")
        if sender and "id" in sender:
            return str(sender["id"])
    return None


class VentBot:
    """
    Dispatches Telegram updates to the moderation and comment services.
    """

    def __init__(
        self,
        notifier: Notifier,
        moderation: ModerationService,
        comments: CommentService,
        intents: IntentTracker,
    ):
        self.notifier = notifier
        self.moderation = moderation
        self.comments = comments
        self.intents = intents

    async def handle_update(self, update: Dict[str, Any]) -> None:
        """
        Handle one update from getUpdates.

        Args:
            update: Raw Telegram Update object.
        """
        if update.get("callback_query"):
            await self.on_callback_query(update["callback_query"])
            return

        message = update.get("message")
        if message and message.get("text") is not None and message.get("from"):
            await self.on_message(message)
            return

        logger.debug(f"Ignoring update {update.get('update_id')} without text or button data")

    async def _reply(self, chat_id, text: str, reply_markup: Optional[Dict[str, Any]] = None) -> None:
        await self.notifier.notify(chat_id, text, reply_markup=reply_markup)

    # ---------- Messages ----------

    async def on_message(self, message: Dict[str, Any]) -> None:
        chat_id = message["chat"]["id"]
        sender = message["from"]
        text = message["text"]

        command = text.split(maxsplit=1)[0].split("@")[0].lower() if text.startswith("/") else None
        if command == "/start":
            await self.on_start(chat_id, text)
        elif command == "/vent" or text.strip() == VENT_NOW_LABEL:
            await self.begin_vent(chat_id, sender)
        elif command == "/pending":
            await self.on_pending(chat_id, sender)
        else:
            await self.on_text(chat_id, sender, text)

    async def on_start(self, chat_id, text: str) -> None:
        await self._reply(chat_id, WELCOME_TEXT, main_keyboard())
        vent_id = parse_start_payload(text)
        if vent_id:
            await self.show_comment_menu(chat_id, vent_id)

    async def begin_vent(self, chat_id, sender: Dict[str, Any]) -> None:
        self.intents.set_intent(sender["id"], Intent.vent())
        await self._reply(chat_id, COMPOSE_VENT_TEXT, main_keyboard())

    async def on_text(self, chat_id, sender: Dict[str, Any], text: str) -> None:
        """
        Interpret a plain text message according to the sender's pending intent.

        The intent is consumed before anything else happens, so a failed
        submission still requires the user to start over.
        """
        intent = self.intents.take_intent(sender["id"])
        if intent is None:
            await self._reply(chat_id, UNKNOWN_TEXT, main_keyboard())
            return

        author = AuthorInfo.from_telegram_user(sender)
        try:
            if intent.kind is IntentKind.AWAITING_COMMENT_TEXT:
                await self.comments.add_comment(intent.vent_id, author, text)
                await self._reply(chat_id, COMMENT_ADDED_TEXT)
            else:
                await self.moderation.submit(author, text)
                await self._reply(chat_id, VENT_RECEIVED_TEXT, main_keyboard())
        except ValidationError:
            await self._reply(chat_id, EMPTY_TEXT, main_keyboard())
        except NotFoundError:
            await self._reply(chat_id, POST_NOT_FOUND_TEXT)
        except StorageError:
            await self._reply(chat_id, RETRY_LATER_TEXT)
        except Exception as e:
            logger.error(f"Error handling text from user {author.user_id}: {e}", exc_info=True)
            await self._reply(chat_id, RETRY_LATER_TEXT)

    async def show_comment_menu(self, chat_id, vent_id: str) -> None:
        try:
            vent = await self.comments.get_vent(vent_id)
        except NotFoundError:
            await self._reply(chat_id, POST_NOT_FOUND_TEXT)
            return
        except StorageError:
            await self._reply(chat_id, "Error showing comments.")
            return
        await self._reply(
            chat_id,
            formatting.comment_menu_text(vent, self.moderation.channel_signature),
            comment_menu_buttons(vent.id),
        )

    async def on_pending(self, chat_id, sender: Dict[str, Any]) -> None:
        try:
            pending = await self.moderation.list_pending(sender["id"])
        except UnauthorizedError:
            # Non-admins get no hint that the command exists
            return
        except StorageError:
            await self._reply(chat_id, RETRY_LATER_TEXT)
            return

        if not pending:
            await self._reply(chat_id, NO_PENDING_TEXT)
            return
        for vent in pending:
            await self._reply(chat_id, formatting.pending_item_text(vent), decision_buttons(vent.id))

    # ---------- Buttons ----------

    async def on_callback_query(self, query: Dict[str, Any]) -> None:
        query_id = query["id"]
        actor = query.get("from") or {}
        message = query.get("message") or {}
        chat_id = (message.get("chat") or {}).get("id", actor.get("id"))

        parsed = parse_callback(query.get("data", ""))
        if parsed is None or "id" not in actor:
            await self.notifier.acknowledge(query_id)
            return

        action, vent_id = parsed
        if action in (ACTION_APPROVE, ACTION_REJECT):
            await self.on_decision(query_id, chat_id, message.get("message_id"), actor, action, vent_id)
        elif action == ACTION_BROWSE:
            await self.on_browse(query_id, chat_id, vent_id)
        elif action == ACTION_ADD_COMMENT:
            self.intents.set_intent(actor["id"], Intent.comment(vent_id))
            await self.notifier.acknowledge(query_id)
            await self._reply(chat_id, COMPOSE_COMMENT_TEXT)

    async def on_decision(
        self,
        query_id: str,
        chat_id,
        message_id: Optional[int],
        actor: Dict[str, Any],
        action: str,
        vent_id: str,
    ) -> None:
        try:
            outcome = await self.moderation.decide(vent_id, actor["id"], Decision(action))
        except UnauthorizedError:
            await self.notifier.acknowledge(query_id, "🚫 Unauthorized", show_alert=True)
            return
        except NotFoundError:
            await self.notifier.acknowledge(query_id, "Not found.")
            return
        except StorageError:
            await self.notifier.acknowledge(query_id, "⚠️ Something went wrong. Try again later.", show_alert=True)
            return

        if message_id is not None:
            await self.notifier.refresh_buttons(chat_id, message_id, None)

        if not outcome.changed:
            await self.notifier.acknowledge(query_id, "Already processed.")
            return

        vent = outcome.vent
        if action == ACTION_APPROVE:
            if outcome.published:
                await self._reply(chat_id, f"✅ Approved & posted (#{vent.public_number})")
            else:
                await self._reply(chat_id, f"⚠️ Approved as #{vent.public_number}, but posting to the channel failed.")
            await self.notifier.acknowledge(query_id, "Posted!")
        else:
            await self._reply(chat_id, "❌ Vent rejected.")
            await self.notifier.acknowledge(query_id, "Rejected.")

    async def on_browse(self, query_id: str, chat_id, vent_id: str) -> None:
        try:
            comments = await self.comments.list_comments(vent_id)
        except StorageError:
            await self.notifier.acknowledge(query_id, "Error occurred.")
            return

        await self.notifier.acknowledge(query_id)
        if not comments:
            await self._reply(chat_id, NO_COMMENTS_TEXT)
            return
        for comment in comments:
            await self._reply(chat_id, formatting.comment_text(comment))
