from __future__ import annotations

import uuid
from typing import NewType

ConversationId = NewType("ConversationId", str)
MessageId = NewType("MessageId", str)

PLACEHOLDER_PREFIX = "local-"


def new_placeholder_id() -> MessageId:
    """Temporary identity for a message the server has not confirmed yet."""
    return MessageId(f"{PLACEHOLDER_PREFIX}{uuid.uuid4().hex}")
