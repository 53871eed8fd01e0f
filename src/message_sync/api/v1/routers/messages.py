from __future__ import annotations

from fastapi import APIRouter, Query, Response, status

from message_sync.api.deps import SessionDep
from message_sync.api.v1.schemas.message import (
    ConversationStateResponse,
    MessageResponse,
    SendMessageRequest,
)

router = APIRouter(prefix="/api/v1/conversations", tags=["messages"])


@router.get("/{conversation_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    session: SessionDep,
    refresh: bool = Query(True),
) -> list[MessageResponse]:
    messages = await session.load() if refresh else session.messages
    return [MessageResponse.model_validate(m, from_attributes=True) for m in messages]


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def send_message(body: SendMessageRequest, session: SessionDep) -> MessageResponse:
    confirmed = await session.send(body.text)
    return MessageResponse.model_validate(confirmed, from_attributes=True)


@router.post(
    "/{conversation_id}/messages/{message_id}/retry",
    response_model=MessageResponse,
)
async def retry_message(message_id: str, session: SessionDep) -> MessageResponse:
    confirmed = await session.retry(message_id)
    return MessageResponse.model_validate(confirmed, from_attributes=True)


@router.delete(
    "/{conversation_id}/messages/{message_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_message(message_id: str, session: SessionDep) -> Response:
    await session.delete(message_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{conversation_id}/error", response_model=ConversationStateResponse)
async def get_error(session: SessionDep) -> ConversationStateResponse:
    return ConversationStateResponse(
        conversation_id=session.conversation_id,
        loading=session.loading,
        error=session.current_error(),
    )


@router.delete("/{conversation_id}/error", status_code=status.HTTP_204_NO_CONTENT)
async def clear_error(session: SessionDep) -> Response:
    session.clear_error()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
