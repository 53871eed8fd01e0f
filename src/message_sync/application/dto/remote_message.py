from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class RemoteMessage:
    """A message as reported by the remote service."""

    id: str
    text: str | None
    created_at: datetime | None
    deleted: bool = False
