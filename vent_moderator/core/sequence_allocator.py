"""
Sequence Allocator for the vent moderation service.

Hands out public vent numbers. The counter row is advanced by a single
INSERT ... ON CONFLICT DO UPDATE ... RETURNING statement, so two concurrent
approvals can never read the same value: the database serialises them on the
counter row and each statement returns its own post-increment value.
"""
import logging
from typing import Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vent_moderator.config.settings import settings
from vent_moderator.core.errors import StorageError
from vent_moderator.models import SequenceCounterORM
from vent_moderator.utils.db_session import get_async_session_factory

logger = logging.getLogger(__name__)

VENT_NUMBER_COUNTER = "vent_number"


class SequenceAllocator:
    """
    Allocates strictly increasing integers from a named durable counter.
    """

    def __init__(
        self,
        start_value: Optional[int] = None,
        counter_name: str = VENT_NUMBER_COUNTER,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    ):
        """
        Initializes the allocator.

        Args:
            start_value: First number handed out when the counter does not exist yet.
                Defaults to the START_VENT_NUMBER setting.
            counter_name: Key of the counter row.
            session_factory: Factory used when `allocate_next` is called without a session.
        """
        self.start_value = start_value if start_value is not None else settings.START_VENT_NUMBER
        self.counter_name = counter_name
        self._session_factory = session_factory

    def _build_increment(self, dialect_name: str):
        if dialect_name == "sqlite":
            stmt = sqlite.insert(SequenceCounterORM)
        else:
            stmt = postgresql.insert(SequenceCounterORM)

        # A missing row is created already advanced past the value we return.
        stmt = stmt.values(name=self.counter_name, next_value=self.start_value + 1)
        stmt = stmt.on_conflict_do_update(
            index_elements=[SequenceCounterORM.name],
            set_={"next_value": SequenceCounterORM.next_value + 1},
        )
        return stmt.returning(SequenceCounterORM.next_value)

    async def _increment_and_fetch(self, session: AsyncSession) -> int:
        dialect_name = session.get_bind().dialect.name
        result = await session.execute(self._build_increment(dialect_name))
        return result.scalar_one() - 1

    async def allocate_next(self, session: Optional[AsyncSession] = None) -> int:
        """
        Returns the next public number and advances the counter by one.

        When `session` is given the increment joins the caller's transaction:
        it becomes durable with the caller's commit and is undone by the
        caller's rollback. Without a session the increment is committed
        immediately in its own transaction.

        Args:
            session: Optional open session to run the increment in.

        Returns:
            The allocated number.

        Raises:
            StorageError: If the counter could not be updated.
        """
        if session is not None:
            try:
                number = await self._increment_and_fetch(session)
            except SQLAlchemyError as e:
                logger.error(f"Database error allocating from counter '{self.counter_name}': {e}", exc_info=True)
                raise StorageError(f"Could not allocate from counter '{self.counter_name}'") from e
            logger.debug(f"Allocated {number} from counter '{self.counter_name}' (joined transaction)")
            return number

        factory = self._session_factory or get_async_session_factory()
        async with factory() as own_session:
            try:
                number = await self._increment_and_fetch(own_session)
                await own_session.commit()
            except SQLAlchemyError as e:
                await own_session.rollback()
                logger.error(f"Database error allocating from counter '{self.counter_name}': {e}", exc_info=True)
                raise StorageError(f"Could not allocate from counter '{self.counter_name}'") from e
        logger.info(f"Allocated {number} from counter '{self.counter_name}'")
        return number
