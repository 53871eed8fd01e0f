from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import datetime
from typing import Any

from message_sync.domain.entities.message import Message, build_message


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def serialize_messages(messages: Sequence[Message]) -> str:
    return json.dumps(
        [
            {
                "id": m.id,
                "text": m.text,
                "createdAt": m.created_at,
                "origin": m.origin,
                "status": m.status,
            }
            for m in messages
        ],
        cls=_Encoder,
    )


def deserialize_messages(raw: str | bytes, conversation_id: str) -> list[Message]:
    """Raises ValueError (or KeyError/TypeError) on a malformed blob."""
    data = json.loads(raw)
    if not isinstance(data, list):
        raise ValueError("expected a JSON array of messages")
    return [
        build_message(
            id=item["id"],
            conversation_id=conversation_id,
            text=item.get("text"),
            created_at=item["createdAt"],
            origin=item["origin"],
            status=item["status"],
        )
        for item in data
    ]
