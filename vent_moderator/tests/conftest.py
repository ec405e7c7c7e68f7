"""Shared fixtures for the vent moderator tests.

Store, allocator and state machine tests run against a file-backed SQLite
database per test, so separate sessions really are separate connections and
concurrent transactions contend for locks the way they do in production.
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from vent_moderator.core.comments import CommentService
from vent_moderator.core.item_store import ItemStore
from vent_moderator.core.moderation import ModerationService
from vent_moderator.core.notifier import Notifier
from vent_moderator.core.sequence_allocator import SequenceAllocator
from vent_moderator.models import AuthorInfo, Base
from vent_moderator.tests.fakes import ADMIN_ID, BOT_USERNAME, CHANNEL_ID, SIGNATURE, START_NUMBER, FakeTransport


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """A fresh SQLite database with all tables, dropped with the tmp dir."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'vents.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def store(session_factory) -> ItemStore:
    return ItemStore(session_factory=session_factory)


@pytest.fixture
def allocator(session_factory) -> SequenceAllocator:
    return SequenceAllocator(start_value=START_NUMBER, session_factory=session_factory)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def notifier(transport) -> Notifier:
    return Notifier(transport)


@pytest.fixture
def moderation(store, allocator, notifier) -> ModerationService:
    return ModerationService(
        store,
        allocator,
        notifier,
        admin_id=ADMIN_ID,
        channel_id=CHANNEL_ID,
        bot_username=BOT_USERNAME,
        channel_signature=SIGNATURE,
    )


@pytest.fixture
def comment_service(store, notifier) -> CommentService:
    return CommentService(store, notifier, channel_id=CHANNEL_ID, bot_username=BOT_USERNAME)


@pytest.fixture
def author() -> AuthorInfo:
    return AuthorInfo(user_id="42", username="sad_student", display_name="Sam Student")


@pytest.fixture
def commenter() -> AuthorInfo:
    return AuthorInfo(user_id="77", username=None, display_name="Kim")
