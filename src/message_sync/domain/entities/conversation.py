from __future__ import annotations

from dataclasses import dataclass, field

from message_sync.domain.entities.message_cache import MessageCache
from message_sync.domain.value_objects.enums import ErrorKind


@dataclass(slots=True)
class Conversation:
    """In-memory state of one contact's thread."""

    id: str
    cache: MessageCache = field(default_factory=MessageCache)
    loading: bool = False
    last_error: ErrorKind | None = None
    # ids known to be mirrored in the persistent store
    persisted_ids: set[str] = field(default_factory=set)
