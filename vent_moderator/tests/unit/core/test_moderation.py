import asyncio

import pytest

from vent_moderator.core.errors import NotFoundError, StorageError, UnauthorizedError, ValidationError
from vent_moderator.core.moderation import ModerationService
from vent_moderator.core.sequence_allocator import VENT_NUMBER_COUNTER, SequenceAllocator
from vent_moderator.models import AuthorInfo, Decision, SequenceCounterORM, VentState
from vent_moderator.tests.fakes import ADMIN_ID, CHANNEL_ID, START_NUMBER, fail_nth_execute


@pytest.mark.asyncio
async def test_submit_stores_pending_vent_and_alerts_admin(moderation, transport, author):
    vent = await moderation.submit(author, "  I failed my midterm  ")

    assert vent.state is VentState.PENDING
    assert vent.text == "I failed my midterm"

    [alert] = transport.sent_to(ADMIN_ID)
    assert "New Vent Submission" in alert.text
    assert "I failed my midterm" in alert.text
    assert "@sad_student" in alert.text
    buttons = alert.reply_markup["inline_keyboard"][0]
    assert [b["callback_data"] for b in buttons] == [f"approve_{vent.id}", f"reject_{vent.id}"]


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   \n\t ", None])
async def test_submit_rejects_empty_text(moderation, store, transport, author, text):
    with pytest.raises(ValidationError):
        await moderation.submit(author, text)

    assert await store.list_pending() == []
    assert transport.sent == []


@pytest.mark.asyncio
async def test_submit_escapes_html(moderation, transport, author):
    await moderation.submit(author, "<b>not bold</b> & co")

    [alert] = transport.sent_to(ADMIN_ID)
    assert "&lt;b&gt;not bold&lt;/b&gt; &amp; co" in alert.text


@pytest.mark.asyncio
async def test_submit_survives_admin_delivery_failure(moderation, store, transport, author):
    transport.failing_chats.add(ADMIN_ID)

    vent = await moderation.submit(author, "still stored")

    assert (await store.get_vent(vent.id)).state is VentState.PENDING


@pytest.mark.asyncio
async def test_approve_publishes_with_next_number(moderation, store, transport, author):
    vent = await moderation.submit(author, "first vent")

    outcome = await moderation.decide(vent.id, ADMIN_ID, Decision.APPROVE)

    assert outcome.changed
    assert outcome.published
    assert outcome.vent.public_number == START_NUMBER

    [post] = transport.sent_to(CHANNEL_ID)
    assert post.text.startswith(f"<b>Vent #{START_NUMBER}</b>")
    assert "first vent" in post.text
    [[button]] = post.reply_markup["inline_keyboard"]
    assert button["text"] == "💬 Comments (0)"
    assert button["url"] == f"https://t.me/test_vent_bot?start=comments_{vent.id}"

    stored = await store.get_vent(vent.id)
    assert stored.state is VentState.APPROVED
    assert stored.channel_message_id == post.message_id

    [notice] = transport.sent_to(author.user_id)
    assert f"Vent #{START_NUMBER}" in notice.text


@pytest.mark.asyncio
async def test_approvals_number_sequentially(moderation, author):
    first = await moderation.submit(author, "a")
    second = await moderation.submit(author, "b")

    one = await moderation.decide(second.id, ADMIN_ID, "approve")
    two = await moderation.decide(first.id, ADMIN_ID, "approve")

    assert [one.vent.public_number, two.vent.public_number] == [START_NUMBER, START_NUMBER + 1]


@pytest.mark.asyncio
async def test_reject_never_consumes_a_number(moderation, transport, author):
    doomed = await moderation.submit(author, "rejected one")
    kept = await moderation.submit(author, "approved one")

    rejected = await moderation.decide(doomed.id, ADMIN_ID, Decision.REJECT)
    approved = await moderation.decide(kept.id, ADMIN_ID, Decision.APPROVE)

    assert rejected.changed
    assert rejected.vent.state is VentState.REJECTED
    assert rejected.vent.public_number is None
    assert approved.vent.public_number == START_NUMBER
    assert len(transport.sent_to(CHANNEL_ID)) == 1
    assert any("not approved" in m.text for m in transport.sent_to(author.user_id))


@pytest.mark.asyncio
async def test_non_admin_cannot_decide(moderation, store, transport, author):
    vent = await moderation.submit(author, "text")
    transport.sent.clear()

    with pytest.raises(UnauthorizedError):
        await moderation.decide(vent.id, "999", Decision.APPROVE)

    assert (await store.get_vent(vent.id)).state is VentState.PENDING
    assert transport.sent == []


@pytest.mark.asyncio
async def test_authorization_is_checked_before_lookup(moderation):
    with pytest.raises(UnauthorizedError):
        await moderation.decide("no-such-vent", "999", Decision.REJECT)


@pytest.mark.asyncio
async def test_decide_on_unknown_vent(moderation):
    with pytest.raises(NotFoundError):
        await moderation.decide("no-such-vent", ADMIN_ID, Decision.APPROVE)


@pytest.mark.asyncio
async def test_second_approval_is_a_noop(moderation, transport, author):
    vent = await moderation.submit(author, "text")
    first = await moderation.decide(vent.id, ADMIN_ID, Decision.APPROVE)
    sent_before = len(transport.sent)

    again = await moderation.decide(vent.id, ADMIN_ID, Decision.APPROVE)

    assert not again.changed
    assert again.vent.public_number == first.vent.public_number
    assert len(transport.sent) == sent_before


@pytest.mark.asyncio
async def test_reject_after_approve_is_a_noop(moderation, store, author):
    vent = await moderation.submit(author, "text")
    await moderation.decide(vent.id, ADMIN_ID, Decision.APPROVE)

    outcome = await moderation.decide(vent.id, ADMIN_ID, Decision.REJECT)

    assert not outcome.changed
    assert (await store.get_vent(vent.id)).state is VentState.APPROVED


@pytest.mark.asyncio
async def test_concurrent_approvals_get_distinct_numbers(moderation, author):
    a = await moderation.submit(author, "a")
    b = await moderation.submit(author, "b")

    outcomes = await asyncio.gather(
        moderation.decide(a.id, ADMIN_ID, Decision.APPROVE),
        moderation.decide(b.id, ADMIN_ID, Decision.APPROVE),
    )

    assert {o.vent.public_number for o in outcomes} == {START_NUMBER, START_NUMBER + 1}


@pytest.mark.asyncio
async def test_racing_approvals_of_one_vent_apply_once(moderation, transport, author):
    vent = await moderation.submit(author, "contested")
    other = await moderation.submit(author, "next in line")

    outcomes = await asyncio.gather(
        moderation.decide(vent.id, ADMIN_ID, Decision.APPROVE),
        moderation.decide(vent.id, ADMIN_ID, Decision.APPROVE),
    )

    assert sorted(o.changed for o in outcomes) == [False, True]
    assert len(transport.sent_to(CHANNEL_ID)) == 1

    # The losing attempt released its number
    following = await moderation.decide(other.id, ADMIN_ID, Decision.APPROVE)
    assert following.vent.public_number == START_NUMBER + 1


@pytest.mark.asyncio
async def test_publish_failure_keeps_approval(moderation, store, transport, author):
    transport.failing_chats.add(CHANNEL_ID)
    vent = await moderation.submit(author, "text")

    outcome = await moderation.decide(vent.id, ADMIN_ID, Decision.APPROVE)

    assert outcome.changed
    assert not outcome.published
    stored = await store.get_vent(vent.id)
    assert stored.state is VentState.APPROVED
    assert stored.public_number == START_NUMBER
    assert stored.channel_message_id is None
    # The submitter still hears about the approval
    assert len(transport.sent_to(author.user_id)) == 1


@pytest.mark.asyncio
async def test_blocked_submitter_does_not_undo_rejection(moderation, store, transport, author):
    transport.failing_chats.add(author.user_id)
    vent = await moderation.submit(author, "text")

    outcome = await moderation.decide(vent.id, ADMIN_ID, Decision.REJECT)

    assert outcome.changed
    assert (await store.get_vent(vent.id)).state is VentState.REJECTED


@pytest.mark.asyncio
async def test_list_pending_is_admin_only(moderation, author):
    await moderation.submit(author, "older")
    newer = await moderation.submit(author, "newer")

    pending = await moderation.list_pending(ADMIN_ID)
    assert pending[0].id == newer.id
    assert len(pending) == 2

    with pytest.raises(UnauthorizedError):
        await moderation.list_pending(author.user_id)


@pytest.mark.asyncio
async def test_counter_starting_at_five(store, notifier, session_factory, author):
    service = ModerationService(
        store,
        SequenceAllocator(start_value=5, session_factory=session_factory),
        notifier,
        admin_id=ADMIN_ID,
        channel_id=CHANNEL_ID,
        bot_username="test_vent_bot",
    )
    vent = await service.submit(AuthorInfo(user_id="1", display_name="Alice"), "stressed about exams")

    first = await service.decide(vent.id, ADMIN_ID, Decision.APPROVE)
    second = await service.decide(vent.id, ADMIN_ID, Decision.APPROVE)

    assert first.vent.state is VentState.APPROVED
    assert first.vent.public_number == 5
    assert first.vent.comment_count == 0
    assert not second.changed
    stored = await store.get_vent(vent.id)
    assert (stored.state, stored.public_number, stored.comment_count) == (VentState.APPROVED, 5, 0)


@pytest.mark.asyncio
async def test_failed_approval_changes_nothing(moderation, store, transport, session_factory, author, monkeypatch):
    vent = await moderation.submit(author, "text")
    transport.sent.clear()
    # The counter upsert runs, then the vent update fails
    fail_nth_execute(monkeypatch, 2)

    with pytest.raises(StorageError):
        await moderation.decide(vent.id, ADMIN_ID, Decision.APPROVE)

    stored = await store.get_vent(vent.id)
    assert stored.state is VentState.PENDING
    assert stored.public_number is None
    async with session_factory() as session:
        assert await session.get(SequenceCounterORM, VENT_NUMBER_COUNTER) is None
    assert transport.sent == []


@pytest.mark.asyncio
async def test_blank_admin_id_matches_nobody(store, allocator, notifier):
    service = ModerationService(store, allocator, notifier, admin_id="", channel_id=CHANNEL_ID)

    assert not service.is_admin("")
    with pytest.raises(UnauthorizedError):
        await service.list_pending("")
