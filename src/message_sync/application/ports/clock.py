from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """Source of timestamps for optimistic messages."""

    def now(self) -> datetime: ...


class SystemClock:
    """UTC wall clock at millisecond precision, the resolution the remote API reports."""

    def now(self) -> datetime:
        now = datetime.now(timezone.utc)
        return now.replace(microsecond=now.microsecond // 1000 * 1000)
