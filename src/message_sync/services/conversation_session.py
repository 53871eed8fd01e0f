from __future__ import annotations

from message_sync.domain.entities.message import Message
from message_sync.domain.value_objects.enums import ErrorKind
from message_sync.services.reconciliation_engine import PendingSend, ReconciliationEngine


class ConversationSession:
    """Per-contact handle over the shared engine.

    All state lives in the engine; a session only binds the conversation id,
    so errors and loads here never touch other conversations.
    """

    __slots__ = ("_engine", "_conversation_id")

    def __init__(self, engine: ReconciliationEngine, conversation_id: str) -> None:
        self._engine = engine
        self._conversation_id = conversation_id

    @property
    def conversation_id(self) -> str:
        return self._conversation_id

    @property
    def messages(self) -> tuple[Message, ...]:
        return self._engine.messages(self._conversation_id)

    @property
    def loading(self) -> bool:
        return self._engine.is_loading(self._conversation_id)

    async def load(self) -> list[Message]:
        return await self._engine.load_messages(self._conversation_id)

    def send(self, text: str) -> PendingSend:
        return self._engine.send_message(self._conversation_id, text)

    def retry(self, message_id: str) -> PendingSend:
        return self._engine.retry_send(self._conversation_id, message_id)

    async def delete(self, message_id: str) -> None:
        """Raises DeleteFailed, or ConflictError while the message is still being sent."""
        await self._engine.delete_message(message_id, self._conversation_id)

    def current_error(self) -> ErrorKind | None:
        return self._engine.current_error(self._conversation_id)

    def clear_error(self) -> None:
        self._engine.clear_error(self._conversation_id)


async def open_session(engine: ReconciliationEngine, conversation_id: str) -> ConversationSession:
    """Create a session and run its first fetch-and-merge cycle.

    FetchFailed propagates; the failure is also left in the error slot.
    """
    session = ConversationSession(engine, conversation_id)
    await session.load()
    return session
