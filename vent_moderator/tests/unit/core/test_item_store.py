import pytest
from sqlalchemy import select

from vent_moderator.core.errors import NotFoundError, StorageError
from vent_moderator.models import CommentORM, SequenceCounterORM, VentState
from vent_moderator.tests.fakes import ADMIN_ID, START_NUMBER, fail_commits, fail_nth_execute


@pytest.mark.asyncio
async def test_create_vent_stores_pending_with_zero_comments(store, author):
    vent = await store.create_vent(author, "exams are crushing me")

    assert len(vent.id) == 32
    assert vent.state is VentState.PENDING
    assert vent.public_number is None
    assert vent.comment_count == 0
    assert vent.user_id == "42"
    assert vent.username == "sad_student"

    loaded = await store.get_vent(vent.id)
    assert loaded == vent


@pytest.mark.asyncio
async def test_get_unknown_vent_is_none(store):
    assert await store.get_vent("does-not-exist") is None


@pytest.mark.asyncio
async def test_list_pending_is_newest_first_and_excludes_decided(store, author):
    first = await store.create_vent(author, "one")
    second = await store.create_vent(author, "two")
    third = await store.create_vent(author, "three")
    await store.reject_pending(second.id, ADMIN_ID)

    pending = await store.list_pending()
    assert [v.id for v in pending] == [third.id, first.id]


@pytest.mark.asyncio
async def test_approve_sets_number_and_state_together(store, allocator, author):
    vent = await store.create_vent(author, "text")

    approved = await store.approve_pending(vent.id, ADMIN_ID, allocator)

    assert approved.state is VentState.APPROVED
    assert approved.public_number == START_NUMBER
    assert approved.decided_by == ADMIN_ID
    assert approved.decided_at is not None


@pytest.mark.asyncio
async def test_approve_of_non_pending_vent_consumes_no_number(store, allocator, author):
    rejected = await store.create_vent(author, "no")
    await store.reject_pending(rejected.id, ADMIN_ID)

    assert await store.approve_pending(rejected.id, ADMIN_ID, allocator) is None

    later = await store.create_vent(author, "yes")
    approved = await store.approve_pending(later.id, ADMIN_ID, allocator)
    assert approved.public_number == START_NUMBER


@pytest.mark.asyncio
async def test_reject_is_applied_once(store, author):
    vent = await store.create_vent(author, "text")

    rejected = await store.reject_pending(vent.id, ADMIN_ID)
    assert rejected.state is VentState.REJECTED
    assert rejected.public_number is None

    assert await store.reject_pending(vent.id, ADMIN_ID) is None


@pytest.mark.asyncio
async def test_record_publication(store, allocator, author):
    vent = await store.create_vent(author, "text")
    await store.approve_pending(vent.id, ADMIN_ID, allocator)

    await store.record_publication(vent.id, 9001)

    assert (await store.get_vent(vent.id)).channel_message_id == 9001


@pytest.mark.asyncio
async def test_add_comment_increments_count(store, allocator, author, commenter):
    vent = await store.create_vent(author, "text")
    await store.approve_pending(vent.id, ADMIN_ID, allocator)

    comment, parent = await store.add_comment(vent.id, commenter, "hang in there")

    assert comment.vent_id == vent.id
    assert comment.text == "hang in there"
    assert comment.user_id == "77"
    assert parent.comment_count == 1


@pytest.mark.asyncio
async def test_add_comment_to_unknown_vent_stores_nothing(store, commenter, session_factory):
    with pytest.raises(NotFoundError) as exc_info:
        await store.add_comment("missing", commenter, "hello?")
    assert exc_info.value.item_id == "missing"

    async with session_factory() as session:
        rows = (await session.execute(select(CommentORM))).scalars().all()
    assert rows == []


@pytest.mark.asyncio
async def test_list_comments_oldest_first(store, allocator, author, commenter):
    vent = await store.create_vent(author, "text")
    await store.approve_pending(vent.id, ADMIN_ID, allocator)
    for text in ("first", "second", "third"):
        await store.add_comment(vent.id, commenter, text)

    comments = await store.list_comments(vent.id)
    assert [c.text for c in comments] == ["first", "second", "third"]
    assert await store.list_comments("missing") == []


@pytest.mark.asyncio
async def test_add_comment_to_pending_vent_stores_nothing(store, author, commenter):
    vent = await store.create_vent(author, "not reviewed yet")

    with pytest.raises(NotFoundError):
        await store.add_comment(vent.id, commenter, "too early")

    assert (await store.get_vent(vent.id)).comment_count == 0
    assert await store.list_comments(vent.id) == []


# ---------- Database failures ----------


@pytest.mark.asyncio
async def test_failed_create_stores_nothing(store, author, monkeypatch):
    fail_commits(monkeypatch)

    with pytest.raises(StorageError):
        await store.create_vent(author, "lost")

    assert await store.list_pending() == []


@pytest.mark.asyncio
async def test_failed_reject_leaves_vent_pending(store, author, monkeypatch):
    vent = await store.create_vent(author, "text")
    fail_nth_execute(monkeypatch, 1)

    with pytest.raises(StorageError):
        await store.reject_pending(vent.id, ADMIN_ID)

    stored = await store.get_vent(vent.id)
    assert stored.state is VentState.PENDING
    assert stored.decided_by is None


@pytest.mark.asyncio
async def test_failed_approve_update_rolls_back_allocation(store, allocator, author, session_factory, monkeypatch):
    vent = await store.create_vent(author, "text")
    # First call is the counter upsert, second the vent update
    fail_nth_execute(monkeypatch, 2)

    with pytest.raises(StorageError):
        await store.approve_pending(vent.id, ADMIN_ID, allocator)

    stored = await store.get_vent(vent.id)
    assert stored.state is VentState.PENDING
    assert stored.public_number is None
    async with session_factory() as session:
        assert await session.get(SequenceCounterORM, allocator.counter_name) is None

    approved = await store.approve_pending(vent.id, ADMIN_ID, allocator)
    assert approved.public_number == START_NUMBER


@pytest.mark.asyncio
async def test_failed_comment_insert_keeps_count(store, allocator, author, commenter, monkeypatch):
    vent = await store.create_vent(author, "text")
    await store.approve_pending(vent.id, ADMIN_ID, allocator)
    await store.add_comment(vent.id, commenter, "first")
    fail_commits(monkeypatch)

    with pytest.raises(StorageError):
        await store.add_comment(vent.id, commenter, "second")

    assert (await store.get_vent(vent.id)).comment_count == 1
    assert [c.text for c in await store.list_comments(vent.id)] == ["first"]
