"""
Moderation State Machine for the vent moderation service.

A vent starts pending and is moved exactly once to approved or rejected by
the admin. Approval allocates the public number and commits the new state
before anything is sent anywhere; publishing to the channel and telling the
submitter are best-effort follow-ups whose failure is only logged. A crash
between the commit and the publish therefore leaves an approved but
unpublished vent (a gap in the channel), never a duplicate number.
"""
import logging
from typing import List, Optional, Union

from vent_moderator.config.settings import settings
from vent_moderator.core.errors import NotFoundError, StorageError, UnauthorizedError, ValidationError
from vent_moderator.core.item_store import ItemStore
from vent_moderator.core.notifier import Notifier
from vent_moderator.core.sequence_allocator import SequenceAllocator
from vent_moderator.models.dtos import AuthorInfo, Decision, DecisionOutcome, VentDTO
from vent_moderator.transport import formatting
from vent_moderator.transport.keyboards import comments_button, decision_buttons

logger = logging.getLogger(__name__)


class ModerationService:
    """
    Owns vent submission and the admin decision on it.
    """

    def __init__(
        self,
        store: ItemStore,
        allocator: SequenceAllocator,
        notifier: Notifier,
        admin_id: Optional[str] = None,
        channel_id: Optional[str] = None,
        bot_username: Optional[str] = None,
        channel_signature: Optional[str] = None,
    ):
        """
        Args:
            store: Durable vent storage.
            allocator: Source of public vent numbers.
            notifier: Best-effort outbound messages.
            admin_id: Chat id allowed to decide. Defaults to the ADMIN_ID setting.
            channel_id: Channel approved vents are published to. Defaults to CHANNEL_ID.
            bot_username: Bot username used in the comments deep link.
            channel_signature: Footer of published vents. Defaults to CHANNEL_SIGNATURE.
        """
        self.store = store
        self.allocator = allocator
        self.notifier = notifier
        self.admin_id = str(admin_id if admin_id is not None else settings.ADMIN_ID)
        self.channel_id = channel_id if channel_id is not None else settings.CHANNEL_ID
        self.bot_username = bot_username if bot_username is not None else settings.BOT_USERNAME
        self.channel_signature = channel_signature if channel_signature is not None else settings.CHANNEL_SIGNATURE

    def is_admin(self, actor_id) -> bool:
        return bool(self.admin_id) and str(actor_id) == self.admin_id

    async def submit(self, author: AuthorInfo, text: Optional[str]) -> VentDTO:
        """
        Stores a new pending vent and sends it to the admin for review.

        Args:
            author: The submitter.
            text: The vent content.

        Returns:
            The pending vent.

        Raises:
            ValidationError: If the text is empty or whitespace only.
            StorageError: If the vent could not be stored.
        """
        content = (text or "").strip()
        if not content:
            raise ValidationError("Vent text must not be empty")

        vent = await self.store.create_vent(author, content)
        await self.notifier.notify(
            self.admin_id,
            formatting.admin_submission_text(vent),
            reply_markup=decision_buttons(vent.id),
        )
        logger.info(f"Vent {vent.id} submitted by {author.display_name or author.user_id} and sent for review")
        return vent

    async def decide(self, vent_id: str, actor_id, decision: Union[Decision, str]) -> DecisionOutcome:
        """
        Applies an admin decision to a vent.

        Deciding on a vent that is already approved or rejected changes
        nothing, publishes nothing and notifies nobody.

        Args:
            vent_id: The vent to decide on.
            actor_id: Chat id of whoever pressed the button.
            decision: Approve or reject.

        Returns:
            The outcome; `changed` is False for the already-decided case.

        Raises:
            UnauthorizedError: If `actor_id` is not the admin. Checked before the lookup.
            NotFoundError: If `vent_id` does not resolve.
            StorageError: If the state change could not be committed.
        """
        if not self.is_admin(actor_id):
            logger.warning(f"Rejected decision attempt by non-admin {actor_id}")
            raise UnauthorizedError(str(actor_id))

        decision = Decision(decision)
        vent = await self.store.get_vent(vent_id)
        if vent is None:
            raise NotFoundError(vent_id)
        if vent.state.is_terminal:
            logger.info(f"Vent {vent_id} already {vent.state.value}; ignoring repeated {decision.value}")
            return DecisionOutcome(vent=vent, changed=False, published=vent.is_published)

        if decision is Decision.REJECT:
            rejected = await self.store.reject_pending(vent_id, actor_id)
            if rejected is None:
                return await self._already_decided(vent_id)
            await self.notifier.notify(rejected.user_id, formatting.rejected_notice())
            return DecisionOutcome(vent=rejected, changed=True)

        approved = await self.store.approve_pending(vent_id, actor_id, self.allocator)
        if approved is None:
            return await self._already_decided(vent_id)

        published = await self._publish(approved)
        await self.notifier.notify(approved.user_id, formatting.approved_notice(approved.public_number))
        return DecisionOutcome(
            vent=published or approved,
            changed=True,
            published=published is not None,
        )

    async def list_pending(self, actor_id) -> List[VentDTO]:
        """
        Pending vents, newest first. Admin only.

        Raises:
            UnauthorizedError: If `actor_id` is not the admin.
        """
        if not self.is_admin(actor_id):
            raise UnauthorizedError(str(actor_id))
        return await self.store.list_pending()

    async def _already_decided(self, vent_id: str) -> DecisionOutcome:
        # Lost a race against a concurrent decision on the same vent
        vent = await self.store.get_vent(vent_id)
        if vent is None:
            raise NotFoundError(vent_id)
        return DecisionOutcome(vent=vent, changed=False, published=vent.is_published)

    async def _publish(self, vent: VentDTO) -> Optional[VentDTO]:
        """
        Posts an approved vent to the channel and records the message reference.

        Returns:
            The vent with its channel message id, or None if posting failed.
        """
        markup = comments_button(self.bot_username, vent.id, 0) if self.bot_username else None
        if markup is None:
            logger.warning(f"Bot username unknown; publishing vent #{vent.public_number} without comments button")

        message_id = await self.notifier.notify(
            self.channel_id,
            formatting.channel_post_text(vent, self.channel_signature),
            reply_markup=markup,
        )
        if message_id is None:
            logger.warning(f"Vent {vent.id} approved as #{vent.public_number} but could not be posted to the channel")
            return None

        try:
            await self.store.record_publication(vent.id, message_id)
        except StorageError:
            logger.error(
                f"Vent #{vent.public_number} was posted as message {message_id} "
                "but the reference could not be stored; its comment button will not refresh"
            )
        logger.info(f"Published vent #{vent.public_number} as channel message {message_id}")
        return vent.model_copy(update={"channel_message_id": message_id})
