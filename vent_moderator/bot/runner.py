"""
Long-polling worker for the vent bot.

Fetches batches of updates, advances the offset past them, and hands them
to the bot. Updates from one user are handled in order; different users are
handled concurrently, so one slow conversation does not stall the rest.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vent_moderator.bot.handlers import VentBot, update_actor_id
from vent_moderator.config.settings import Settings, settings as default_settings
from vent_moderator.core.comments import CommentService
from vent_moderator.core.errors import TransportError, VentModeratorError
from vent_moderator.core.intent_tracker import IntentTracker
from vent_moderator.core.item_store import ItemStore
from vent_moderator.core.moderation import ModerationService
from vent_moderator.core.notifier import Notifier
from vent_moderator.core.sequence_allocator import SequenceAllocator
from vent_moderator.transport.telegram import TelegramClient

logger = logging.getLogger(__name__)


class PollingRunner:
    """Drives a VentBot from Telegram's getUpdates long polling."""

    def __init__(
        self,
        client: TelegramClient,
        bot: VentBot,
        poll_timeout: int = 30,
        retry_delay: float = 5.0,
    ):
        self.client = client
        self.bot = bot
        self.poll_timeout = poll_timeout
        self.retry_delay = retry_delay
        self.offset: Optional[int] = None

    async def poll_once(self) -> int:
        """
        Fetch and handle one batch of updates.

        Returns:
            int: Number of updates received.

        Raises:
            TransportError: If getUpdates failed.
        """
        updates = await self.client.get_updates(offset=self.offset, poll_timeout=self.poll_timeout)
        if not updates:
            return 0

        # Acknowledge the batch up front; a failing update is not redelivered
        self.offset = max(update["update_id"] for update in updates) + 1
        await self.dispatch(updates)
        return len(updates)

    async def dispatch(self, updates: List[Dict[str, Any]]) -> None:
        """Handle a batch, sequentially per user and concurrently across users."""
        by_actor: Dict[Optional[str], List[Dict[str, Any]]] = {}
        for update in updates:
            by_actor.setdefault(update_actor_id(update), []).append(update)

        await asyncio.gather(*(self._handle_in_order(batch) for batch in by_actor.values()))

    async def _handle_in_order(self, updates: List[Dict[str, Any]]) -> None:
        for update in updates:
            try:
                await self.bot.handle_update(update)
            except Exception as e:
                logger.error(f"Error handling update {update.get('update_id')}: {e}", exc_info=True)

    async def run_forever(self) -> None:
        logger.info(f"Polling for updates as @{self.client.username}")
        try:
            while True:
                try:
                    received = await self.poll_once()
                    if received:
                        logger.debug(f"Handled {received} updates; next offset {self.offset}")
                except TransportError as e:
                    logger.warning(f"Polling failed: {e.message}. Retrying in {self.retry_delay}s")
                    await asyncio.sleep(self.retry_delay)
        except asyncio.CancelledError:
            logger.info("Polling worker cancelled. Shutting down.")
            raise


async def create_runner(
    config: Optional[Settings] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    client: Optional[TelegramClient] = None,
) -> PollingRunner:
    """
    Wire the Telegram client, core services and bot into a polling runner.

    Args:
        config: Settings to build from. Defaults to the module settings.
        session_factory: Session factory for the store and allocator.
        client: Preconstructed Telegram client, mainly for tests.

    Raises:
        VentModeratorError: If required settings are missing or the bot
            username cannot be determined.
    """
    config = config or default_settings
    missing = config.missing_required()
    if missing:
        raise VentModeratorError(f"Missing required settings: {', '.join(missing)}")

    client = client or TelegramClient(
        token=config.BOT_TOKEN,
        api_base_url=config.TELEGRAM_API_BASE_URL,
        timeout=config.TRANSPORT_TIMEOUT_SECONDS,
    )
    try:
        await client.get_me()
    except TransportError as e:
        logger.warning(f"getMe failed: {e.message}. Falling back to configured BOT_USERNAME")
        client.username = config.BOT_USERNAME
    if not client.username:
        raise VentModeratorError("Bot username unknown: getMe failed and BOT_USERNAME is not set")

    notifier = Notifier(client)
    store = ItemStore(session_factory=session_factory)
    allocator = SequenceAllocator(start_value=config.START_VENT_NUMBER, session_factory=session_factory)
    moderation = ModerationService(
        store,
        allocator,
        notifier,
        admin_id=config.ADMIN_ID,
        channel_id=config.CHANNEL_ID,
        bot_username=client.username,
        channel_signature=config.CHANNEL_SIGNATURE,
    )
    comments = CommentService(store, notifier, channel_id=config.CHANNEL_ID, bot_username=client.username)
    bot = VentBot(notifier, moderation, comments, IntentTracker())

    return PollingRunner(
        client,
        bot,
        poll_timeout=config.POLL_TIMEOUT_SECONDS,
        retry_delay=config.POLL_RETRY_DELAY_SECONDS,
    )
