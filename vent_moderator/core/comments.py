"""
Comment threading for the vent moderation service.

Comments are attached to an approved vent and counted on it. When the vent has been
published, the comment button under the channel post is refreshed with the
new count; the stored count stays the source of truth if that refresh fails.
"""
import logging
from typing import List, Optional

from vent_moderator.config.settings import settings
from vent_moderator.core.errors import NotFoundError, ValidationError
from vent_moderator.core.item_store import ItemStore
from vent_moderator.core.notifier import Notifier
from vent_moderator.models.dtos import AuthorInfo, CommentDTO, VentDTO, VentState
from vent_moderator.transport.keyboards import comments_button

logger = logging.getLogger(__name__)


class CommentService:
    """Adds and lists comments on vents."""

    def __init__(
        self,
        store: ItemStore,
        notifier: Notifier,
        channel_id: Optional[str] = None,
        bot_username: Optional[str] = None,
    ):
        self.store = store
        self.notifier = notifier
        self.channel_id = channel_id if channel_id is not None else settings.CHANNEL_ID
        self.bot_username = bot_username if bot_username is not None else settings.BOT_USERNAME

    async def get_vent(self, vent_id: str) -> VentDTO:
        """
        Looks up the vent a comment thread belongs to.

        Raises:
            NotFoundError: If `vent_id` does not resolve to an approved vent.
        """
        vent = await self.store.get_vent(vent_id)
        if vent is None or vent.state is not VentState.APPROVED:
            raise NotFoundError(vent_id)
        return vent

    async def add_comment(self, vent_id: str, author: AuthorInfo, text: Optional[str]) -> CommentDTO:
        """
        Stores a comment on `vent_id` and increments the vent's comment count by one.

        Args:
            vent_id: The parent vent.
            author: The commenter.
            text: The comment content.

        Returns:
            The stored comment.

        Raises:
            ValidationError: If the text is empty or whitespace only.
            NotFoundError: If the parent vent does not exist or is not approved. Nothing is stored.
            StorageError: If the comment could not be stored.
        """
        content = (text or "").strip()
        if not content:
            raise ValidationError("Comment text must not be empty")

        comment, vent = await self.store.add_comment(vent_id, author, content)

        if vent.channel_message_id is not None:
            if self.bot_username:
                await self.notifier.refresh_buttons(
                    self.channel_id,
                    vent.channel_message_id,
                    comments_button(self.bot_username, vent.id, vent.comment_count),
                )
            else:
                logger.warning(f"Bot username unknown; comment count of vent {vent.id} not refreshed")
        return comment

    async def list_comments(self, vent_id: str) -> List[CommentDTO]:
        """Comments on `vent_id`, oldest first. Each call runs a fresh query."""
        return await self.store.list_comments(vent_id)
