"""Wire models for the remote contacts/messages API."""
from __future__ import annotations

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class RemoteMessagePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1, validation_alias=AliasChoices("uuid", "id"))
    text: str | None = None
    created_at: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("createdAt", "created_at"),
    )
    status: str | None = None
    deleted: bool = False


class ListedMessagePayload(RemoteMessagePayload):
    # history entries are ordered by time, so the timestamp is mandatory here
    created_at: datetime = Field(validation_alias=AliasChoices("createdAt", "created_at"))


class MessageListResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    messages: list[ListedMessagePayload] = []


class SendMessageResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: RemoteMessagePayload | None = None
    uuid: str | None = None


class ErrorResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: str | None = None
