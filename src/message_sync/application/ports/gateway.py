from __future__ import annotations

from typing import Protocol

from message_sync.application.dto.remote_message import RemoteMessage


class MessageGateway(Protocol):
    """Authenticated access to the remote message service.

    Implementations raise FetchFailed / SendFailed / DeleteFailed and never
    expose the bearer credential to callers.
    """

    async def fetch_messages(self, conversation_id: str, limit: int) -> list[RemoteMessage]: ...

    async def send_message(self, conversation_id: str, text: str) -> RemoteMessage: ...

    async def delete_message(self, message_id: str) -> None: ...
