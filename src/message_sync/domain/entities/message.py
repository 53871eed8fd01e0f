from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from message_sync.domain.value_objects.enums import MessageOrigin, MessageStatus

_ALLOWED_STATUSES: dict[MessageOrigin, frozenset[MessageStatus]] = {
    MessageOrigin.LOCAL_PENDING: frozenset({MessageStatus.PENDING, MessageStatus.FAILED}),
    MessageOrigin.LOCAL_CONFIRMED: frozenset({MessageStatus.SENT, MessageStatus.DELETED}),
    MessageOrigin.REMOTE: frozenset({MessageStatus.SENT, MessageStatus.DELETED}),
}


@dataclass(frozen=True, slots=True)
class Message:
    id: str
    conversation_id: str
    text: str
    created_at: datetime
    origin: MessageOrigin
    status: MessageStatus

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("message id must not be empty")
        if self.created_at.tzinfo is None:
            raise ValueError("created_at must be timezone-aware")
        if self.status not in _ALLOWED_STATUSES[self.origin]:
            raise ValueError(f"status {self.status!s} is not valid for origin {self.origin!s}")

    @property
    def is_confirmed(self) -> bool:
        return self.origin is not MessageOrigin.LOCAL_PENDING

    @property
    def is_visible(self) -> bool:
        return self.status is not MessageStatus.DELETED


def parse_timestamp(value: datetime | str) -> datetime:
    """Accept ISO-8601 text or a datetime and return an aware UTC datetime."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.strip())
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def build_message(
    *,
    id: str,
    conversation_id: str,
    text: str | None,
    created_at: datetime | str,
    origin: MessageOrigin | str,
    status: MessageStatus | str,
) -> Message:
    """Single entry point for creating cache entries.

    Every field is always populated: missing text becomes an empty string,
    timestamps are normalized to UTC and the origin/status tags are coerced
    to their enums so nothing downstream has to guess from field presence.
    """
    return Message(
        id=str(id),
        conversation_id=str(conversation_id),
        text=text or "",
        created_at=parse_timestamp(created_at),
        origin=MessageOrigin(origin),
        status=MessageStatus(status),
    )


def with_status(
    message: Message,
    status: MessageStatus,
    *,
    created_at: datetime | None = None,
) -> Message:
    return build_message(
        id=message.id,
        conversation_id=message.conversation_id,
        text=message.text,
        created_at=created_at or message.created_at,
        origin=message.origin,
        status=status,
    )
