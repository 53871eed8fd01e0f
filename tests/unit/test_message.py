from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from message_sync.domain.entities.message import build_message, with_status
from message_sync.domain.value_objects.enums import MessageOrigin, MessageStatus


def test_build_message_normalizes_fields():
    msg = build_message(
        id=123,
        conversation_id="C1",
        text=None,
        created_at="2024-05-01T12:00:00Z",
        origin="remote",
        status="sent",
    )

    assert msg.id == "123"
    assert msg.text == ""
    assert msg.created_at == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert msg.origin is MessageOrigin.REMOTE
    assert msg.status is MessageStatus.SENT


def test_build_message_converts_offsets_and_naive_times_to_utc():
    offset = build_message(
        id="a", conversation_id="C1", text="x",
        created_at="2024-05-01T14:00:00+02:00", origin="remote", status="sent",
    )
    naive = build_message(
        id="b", conversation_id="C1", text="x",
        created_at=datetime(2024, 5, 1, 12, 0), origin="remote", status="sent",
    )

    assert offset.created_at == naive.created_at
    assert offset.created_at.utcoffset() == timedelta(0)


@pytest.mark.parametrize(
    ("origin", "status"),
    [
        (MessageOrigin.LOCAL_PENDING, MessageStatus.SENT),
        (MessageOrigin.REMOTE, MessageStatus.PENDING),
        (MessageOrigin.LOCAL_CONFIRMED, MessageStatus.FAILED),
    ],
)
def test_inconsistent_tags_are_rejected(origin, status):
    with pytest.raises(ValueError):
        build_message(
            id="m-1", conversation_id="C1", text="x",
            created_at="2024-05-01T12:00:00Z", origin=origin, status=status,
        )


def test_unknown_tag_is_rejected():
    with pytest.raises(ValueError):
        build_message(
            id="m-1", conversation_id="C1", text="x",
            created_at="2024-05-01T12:00:00Z", origin="outgoing", status="sent",
        )


def test_with_status_keeps_identity():
    pending = build_message(
        id="local-1", conversation_id="C1", text="hi",
        created_at="2024-05-01T12:00:00Z", origin="local-pending", status="pending",
    )

    failed = with_status(pending, MessageStatus.FAILED)

    assert failed.id == pending.id
    assert failed.created_at == pending.created_at
    assert failed.status is MessageStatus.FAILED
    assert not failed.is_confirmed
