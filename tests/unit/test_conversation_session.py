from __future__ import annotations

import pytest

from message_sync.application.exceptions import FetchFailed, SendFailed
from message_sync.domain.value_objects.enums import ErrorKind, MessageStatus
from message_sync.services.conversation_session import ConversationSession, open_session
from tests.conftest import remote


@pytest.mark.asyncio
async def test_open_session_runs_first_load(engine, gateway):
    gateway.history["C1"] = [remote("m-1", 1), remote("m-2", 2)]

    session = await open_session(engine, "C1")

    assert session.conversation_id == "C1"
    assert [m.id for m in session.messages] == ["m-1", "m-2"]
    assert session.loading is False


@pytest.mark.asyncio
async def test_open_session_propagates_fetch_failure(engine, gateway):
    gateway.fail_fetch = True

    with pytest.raises(FetchFailed):
        await open_session(engine, "C1")

    session = ConversationSession(engine, "C1")
    assert session.current_error() is ErrorKind.FETCH_FAILED


@pytest.mark.asyncio
async def test_session_send_and_delete(engine, gateway, store):
    session = ConversationSession(engine, "C1")

    pending = session.send("hi")
    assert session.messages[0].status is MessageStatus.PENDING
    confirmed = await pending

    await session.delete(confirmed.id)

    assert session.messages == ()
    assert gateway.deleted == [confirmed.id]
    assert store._data["C1"] == []


@pytest.mark.asyncio
async def test_session_retry_and_clear_error(engine, gateway):
    session = ConversationSession(engine, "C1")
    gateway.fail_send = True
    pending = session.send("hi")
    with pytest.raises(SendFailed):
        await pending
    assert session.current_error() is ErrorKind.SEND_FAILED

    session.clear_error()
    assert session.current_error() is None

    gateway.fail_send = False
    confirmed = await session.retry(pending.message.id)
    assert [m.id for m in session.messages] == [confirmed.id]


@pytest.mark.asyncio
async def test_sessions_keep_errors_apart(engine, gateway):
    gateway.history["C2"] = [remote("m-5", 1)]
    failing = ConversationSession(engine, "C1")
    healthy = await open_session(engine, "C2")
    gateway.fail_send = True

    with pytest.raises(SendFailed):
        await failing.send("hi")

    assert failing.current_error() is ErrorKind.SEND_FAILED
    assert healthy.current_error() is None
    assert [m.id for m in healthy.messages] == ["m-5"]
