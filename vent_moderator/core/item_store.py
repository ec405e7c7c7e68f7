"""
Item Store for the vent moderation service.

Durable record of vents and comments. Every state change is a conditional
single-statement update inside one transaction, so the invariants hold even
when two handlers race on the same vent:

- a vent leaves the pending state at most once;
- a public number is written only together with the approved state;
- a comment is inserted only while its parent vent exists and is approved,
  and the parent's comment counter is bumped in the same transaction.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vent_moderator.core.errors import NotFoundError, StorageError
from vent_moderator.core.sequence_allocator import SequenceAllocator
from vent_moderator.models import CommentORM, VentORM
from vent_moderator.models.dtos import AuthorInfo, CommentDTO, VentDTO, VentState
from vent_moderator.utils.db_session import get_async_session_factory

logger = logging.getLogger(__name__)


class ItemStore:
    """
    Reads and writes vents and comments.

    SQLAlchemy errors never escape: the transaction is rolled back and a
    StorageError is raised instead.
    """

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        """
        Args:
            session_factory: Factory for new sessions. Defaults to the application factory.
        """
        self._session_factory = session_factory

    def _session(self) -> AsyncSession:
        factory = self._session_factory or get_async_session_factory()
        return factory()

    async def create_vent(self, author: AuthorInfo, text: str) -> VentDTO:
        """
        Persists a new pending vent.

        Args:
            author: The submitter.
            text: Non-empty vent content (validated by the caller).

        Returns:
            The stored vent.
        """
        async with self._session() as session:
            try:
                vent = VentORM(
                    user_id=author.user_id,
                    username=author.username,
                    display_name=author.display_name,
                    text=text,
                    state=VentState.PENDING,
                    comment_count=0,
                )
                session.add(vent)
                await session.commit()
                await session.refresh(vent)
                logger.info(f"Stored pending vent {vent.id} from user {author.user_id}")
                return VentDTO.model_validate(vent)
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Database error storing vent from user {author.user_id}: {e}", exc_info=True)
                raise StorageError("Could not store vent") from e

    async def get_vent(self, vent_id: str) -> Optional[VentDTO]:
        """Returns the vent with `vent_id`, or None."""
        async with self._session() as session:
            try:
                vent = await session.get(VentORM, vent_id)
            except SQLAlchemyError as e:
                logger.error(f"Database error loading vent {vent_id}: {e}", exc_info=True)
                raise StorageError("Could not load vent") from e
            return VentDTO.model_validate(vent) if vent is not None else None

    async def list_pending(self) -> List[VentDTO]:
        """Pending vents, newest first."""
        async with self._session() as session:
            try:
                result = await session.execute(
                    select(VentORM)
                    .where(VentORM.state == VentState.PENDING)
                    .order_by(VentORM.created_at.desc())
                )
            except SQLAlchemyError as e:
                logger.error(f"Database error listing pending vents: {e}", exc_info=True)
                raise StorageError("Could not list pending vents") from e
            return [VentDTO.model_validate(v) for v in result.scalars().all()]

    async def reject_pending(self, vent_id: str, actor_id: str) -> Optional[VentDTO]:
        """
        Moves a pending vent to the rejected state.

        Returns:
            The rejected vent, or None if the vent was no longer pending.
        """
        async with self._session() as session:
            try:
                result = await session.execute(
                    update(VentORM)
                    .where(VentORM.id == vent_id, VentORM.state == VentState.PENDING)
                    .values(
                        state=VentState.REJECTED,
                        decided_at=datetime.now(timezone.utc),
                        decided_by=str(actor_id),
                    )
                )
                if result.rowcount == 0:
                    await session.rollback()
                    return None
                await session.commit()
                vent = await session.get(VentORM, vent_id, populate_existing=True)
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Database error rejecting vent {vent_id}: {e}", exc_info=True)
                raise StorageError("Could not reject vent") from e
        logger.info(f"Vent {vent_id} rejected by {actor_id}")
        return VentDTO.model_validate(vent)

    async def approve_pending(
        self, vent_id: str, actor_id: str, allocator: SequenceAllocator
    ) -> Optional[VentDTO]:
        """
        Moves a pending vent to the approved state with a freshly allocated number.

        The allocation and the state change share one transaction. If the vent
        is no longer pending when the update runs, both are rolled back, so a
        lost race consumes no number.

        Returns:
            The approved vent, or None if the vent was no longer pending.
        """
        async with self._session() as session:
            try:
                number = await allocator.allocate_next(session)
                result = await session.execute(
                    update(VentORM)
                    .where(VentORM.id == vent_id, VentORM.state == VentState.PENDING)
                    .values(
                        state=VentState.APPROVED,
                        public_number=number,
                        decided_at=datetime.now(timezone.utc),
                        decided_by=str(actor_id),
                    )
                )
                if result.rowcount == 0:
                    await session.rollback()
                    logger.info(f"Vent {vent_id} was decided concurrently; number {number} released")
                    return None
                await session.commit()
                vent = await session.get(VentORM, vent_id, populate_existing=True)
            except StorageError:
                await session.rollback()
                raise
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Database error approving vent {vent_id}: {e}", exc_info=True)
                raise StorageError("Could not approve vent") from e
        logger.info(f"Vent {vent_id} approved by {actor_id} as #{number}")
        return VentDTO.model_validate(vent)

    async def record_publication(self, vent_id: str, channel_message_id: int) -> None:
        """Stores the channel message reference of a published vent."""
        async with self._session() as session:
            try:
                await session.execute(
                    update(VentORM)
                    .where(VentORM.id == vent_id, VentORM.state == VentState.APPROVED)
                    .values(channel_message_id=channel_message_id)
                )
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Database error recording publication of vent {vent_id}: {e}", exc_info=True)
                raise StorageError("Could not record publication") from e

    async def add_comment(self, vent_id: str, author: AuthorInfo, text: str) -> Tuple[CommentDTO, VentDTO]:
        """
        Stores a comment on an approved vent and bumps its comment counter by one.

        Returns:
            The stored comment and the parent vent after the increment.

        Raises:
            NotFoundError: If `vent_id` does not resolve to an approved vent. Nothing is stored.
        """
        async with self._session() as session:
            try:
                bumped = await session.execute(
                    update(VentORM)
                    .where(VentORM.id == vent_id, VentORM.state == VentState.APPROVED)
                    .values(comment_count=VentORM.comment_count + 1)
                    .returning(VentORM.id)
                )
                if bumped.scalar_one_or_none() is None:
                    await session.rollback()
                    raise NotFoundError(vent_id)

                comment = CommentORM(
                    vent_id=vent_id,
                    user_id=author.user_id,
                    username=author.username,
                    display_name=author.display_name,
                    text=text,
                )
                session.add(comment)
                await session.commit()
                await session.refresh(comment)
                vent = await session.get(VentORM, vent_id, populate_existing=True)
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Database error adding comment to vent {vent_id}: {e}", exc_info=True)
                raise StorageError("Could not store comment") from e
        logger.info(f"Comment {comment.id} added to vent {vent_id} (count now {vent.comment_count})")
        return CommentDTO.model_validate(comment), VentDTO.model_validate(vent)

    async def list_comments(self, vent_id: str) -> List[CommentDTO]:
        """Comments of a vent, oldest first."""
        async with self._session() as session:
            try:
                result = await session.execute(
                    select(CommentORM)
                    .where(CommentORM.vent_id == vent_id)
                    .order_by(CommentORM.created_at.asc(), CommentORM.id.asc())
                )
            except SQLAlchemyError as e:
                logger.error(f"Database error listing comments of vent {vent_id}: {e}", exc_info=True)
                raise StorageError("Could not list comments") from e
            return [CommentDTO.model_validate(c) for c in result.scalars().all()]
