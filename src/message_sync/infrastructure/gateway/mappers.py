from __future__ import annotations

from message_sync.application.dto.remote_message import RemoteMessage
from message_sync.domain.value_objects.enums import MessageStatus
from message_sync.infrastructure.gateway.schemas import RemoteMessagePayload


def payload_to_dto(payload: RemoteMessagePayload) -> RemoteMessage:
    return RemoteMessage(
        id=payload.id,
        text=payload.text,
        created_at=payload.created_at,
        deleted=payload.deleted or payload.status == MessageStatus.DELETED,
    )
