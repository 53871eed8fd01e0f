"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import itertools
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import pytest

from message_sync.application.dto.remote_message import RemoteMessage
from message_sync.application.exceptions import (
    DeleteFailed,
    FetchFailed,
    SendFailed,
    StorageUnavailable,
)
from message_sync.domain.entities.message import Message, build_message
from message_sync.domain.value_objects.enums import MessageOrigin, MessageStatus
from message_sync.services.reconciliation_engine import ReconciliationEngine

T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def ts(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


def make_message(
    message_id: str = "m-1",
    *,
    conversation_id: str = "C1",
    text: str = "hello",
    minutes: int = 0,
    origin: MessageOrigin = MessageOrigin.REMOTE,
    status: MessageStatus = MessageStatus.SENT,
) -> Message:
    return build_message(
        id=message_id,
        conversation_id=conversation_id,
        text=text,
        created_at=ts(minutes),
        origin=origin,
        status=status,
    )


def remote(message_id: str, minutes: int, text: str = "hello", *, deleted: bool = False) -> RemoteMessage:
    return RemoteMessage(id=message_id, text=text, created_at=ts(minutes), deleted=deleted)


@dataclass
class SteppingClock:
    """Each call returns a strictly later instant."""

    start: datetime = field(default_factory=lambda: ts(100))
    _calls: itertools.count = field(default_factory=itertools.count)

    def now(self) -> datetime:
        return self.start + timedelta(seconds=next(self._calls))


@dataclass
class FakeGateway:
    """In-memory remote service.

    ``*_gate`` events, when set to an unset Event, park the call until the
    test releases it; ``fail_*`` flags make the next calls raise.
    """

    history: dict[str, list[RemoteMessage]] = field(default_factory=dict)
    next_ids: itertools.count = field(default_factory=lambda: itertools.count(42))
    fail_fetch: bool = False
    fail_send: bool = False
    fail_delete: bool = False
    fetch_gate: asyncio.Event | None = None
    send_gate: asyncio.Event | None = None
    fetch_calls: list[tuple[str, int]] = field(default_factory=list)
    sent: list[tuple[str, str]] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)

    async def fetch_messages(self, conversation_id: str, limit: int) -> list[RemoteMessage]:
        self.fetch_calls.append((conversation_id, limit))
        if self.fetch_gate is not None:
            await self.fetch_gate.wait()
        if self.fail_fetch:
            raise FetchFailed("Service unavailable", status_code=503, body="down")
        return list(self.history.get(conversation_id, []))[:limit]

    async def send_message(self, conversation_id: str, text: str) -> RemoteMessage:
        if self.send_gate is not None:
            await self.send_gate.wait()
        if self.fail_send:
            raise SendFailed("Bad gateway", status_code=502, body="upstream error")
        message_id = f"m-{next(self.next_ids)}"
        confirmed = RemoteMessage(id=message_id, text=text, created_at=ts(200))
        self.sent.append((conversation_id, text))
        self.history.setdefault(conversation_id, []).append(confirmed)
        return confirmed

    async def delete_message(self, message_id: str) -> None:
        if self.fail_delete:
            raise DeleteFailed("Not allowed", status_code=403, body="forbidden")
        self.deleted.append(message_id)
        for messages in self.history.values():
            messages[:] = [m for m in messages if m.id != message_id]


@dataclass
class FakeStore:
    _data: dict[str, list[Message]] = field(default_factory=dict)
    fail_reads: bool = False
    fail_writes: bool = False
    put_calls: int = 0

    async def get_conversation_messages(self, conversation_id: str) -> list[Message] | None:
        if self.fail_reads:
            raise StorageUnavailable("store offline")
        stored = self._data.get(conversation_id)
        return list(stored) if stored is not None else None

    async def put_conversation_messages(
        self,
        conversation_id: str,
        messages: Sequence[Message],
    ) -> None:
        if self.fail_writes:
            raise StorageUnavailable("store offline")
        self.put_calls += 1
        self._data[conversation_id] = list(messages)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def engine(gateway: FakeGateway, store: FakeStore) -> ReconciliationEngine:
    placeholders = itertools.count(1)
    return ReconciliationEngine(
        gateway,
        store,
        page_size=100,
        clock=SteppingClock(),
        placeholder_ids=lambda: f"local-{next(placeholders)}",
    )
