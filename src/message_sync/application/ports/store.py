from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from message_sync.domain.entities.message import Message


class MessageStore(Protocol):
    """Durable per-conversation mirror of locally sent messages.

    Both calls may raise StorageUnavailable.
    """

    async def get_conversation_messages(self, conversation_id: str) -> list[Message] | None: ...

    async def put_conversation_messages(
        self,
        conversation_id: str,
        messages: Sequence[Message],
    ) -> None: ...
