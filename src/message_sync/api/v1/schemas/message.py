from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from message_sync.domain.value_objects.enums import ErrorKind, MessageOrigin, MessageStatus


class SendMessageRequest(BaseModel):
    text: str = Field(min_length=1)


class MessageResponse(BaseModel):
    id: str
    conversation_id: str
    text: str
    created_at: datetime
    origin: MessageOrigin
    status: MessageStatus

    model_config = {"from_attributes": True}


class ConversationStateResponse(BaseModel):
    conversation_id: str
    loading: bool
    error: ErrorKind | None
