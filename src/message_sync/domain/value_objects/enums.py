from __future__ import annotations

from enum import StrEnum


class MessageOrigin(StrEnum):
    REMOTE = "remote"
    LOCAL_PENDING = "local-pending"
    LOCAL_CONFIRMED = "local-confirmed"


class MessageStatus(StrEnum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    DELETED = "deleted"


class ErrorKind(StrEnum):
    FETCH_FAILED = "fetch_failed"
    SEND_FAILED = "send_failed"
    DELETE_FAILED = "delete_failed"
    STORAGE_UNAVAILABLE = "storage_unavailable"
