"""Ordered, deduplicated message set for one conversation."""
from __future__ import annotations

import bisect
import itertools
from collections.abc import Iterable, Sequence
from datetime import datetime

from message_sync.domain.entities.message import Message

_SortKey = tuple[datetime, int]


def merge(remote: Sequence[Message], local: Sequence[Message]) -> list[Message]:
    """Deduplicated union of a remote page and local entries.

    Remote entries win on identity. Placeholder ids never exist server-side,
    so unconfirmed local entries always survive. Remote tombstones still
    claim their id but are left out of the result. The sort is stable, so
    equal timestamps keep arrival order: remote first, then local.
    """
    seen: set[str] = set()
    merged: list[Message] = []
    for message in itertools.chain(remote, local):
        if message.id in seen:
            continue
        seen.add(message.id)
        if message.is_visible:
            merged.append(message)
    merged.sort(key=lambda m: m.created_at)
    return merged


class MessageCache:
    """Messages sorted by ``(created_at, arrival order)`` with unique ids.

    Positions are found by bisection; the underlying list insert/delete is
    still a memmove, so very long threads pay O(n) per mutation.
    """

    __slots__ = ("_keys", "_entries", "_index", "_seq")

    def __init__(self, messages: Iterable[Message] = ()) -> None:
        self._keys: list[_SortKey] = []
        self._entries: list[Message] = []
        self._index: dict[str, _SortKey] = {}
        self._seq = itertools.count()
        for message in messages:
            self.upsert(message)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._index

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._entries)

    def get(self, message_id: str) -> Message | None:
        key = self._index.get(message_id)
        if key is None:
            return None
        return self._entries[self._position(key)]

    def upsert(self, message: Message) -> None:
        """Insert or replace by id; a replaced entry keeps its arrival slot."""
        previous = self._index.get(message.id)
        if previous is not None:
            self._pop(previous)
            seq = previous[1]
        else:
            seq = next(self._seq)
        key = (message.created_at, seq)
        pos = bisect.bisect_right(self._keys, key)
        self._keys.insert(pos, key)
        self._entries.insert(pos, message)
        self._index[message.id] = key

    def replace(self, old_id: str, message: Message) -> None:
        """Swap a placeholder entry for its confirmed form."""
        if old_id != message.id:
            self.remove(old_id)
        self.upsert(message)

    def remove(self, message_id: str) -> bool:
        key = self._index.get(message_id)
        if key is None:
            return False
        self._pop(key)
        return True

    def _position(self, key: _SortKey) -> int:
        return bisect.bisect_left(self._keys, key)

    def _pop(self, key: _SortKey) -> Message:
        pos = self._position(key)
        self._keys.pop(pos)
        message = self._entries.pop(pos)
        del self._index[message.id]
        return message
