from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from message_sync.domain.value_objects.enums import ErrorKind

if TYPE_CHECKING:
    from message_sync.domain.entities.message import Message


class AppError(Exception):
    """Base application error."""

    kind: ClassVar[ErrorKind | None] = None

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class ConflictError(AppError):
    pass


class ValidationError(AppError):
    pass


class GatewayError(AppError):
    """Remote service call failed or timed out (status_code is None then)."""

    def __init__(
        self,
        detail: str = "",
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.body = body


class FetchFailed(GatewayError):
    kind = ErrorKind.FETCH_FAILED


class SendFailed(GatewayError):
    kind = ErrorKind.SEND_FAILED

    def __init__(
        self,
        detail: str = "",
        *,
        status_code: int | None = None,
        body: str | None = None,
        message: Message | None = None,
    ) -> None:
        super().__init__(detail, status_code=status_code, body=body)
        self.message = message


class DeleteFailed(GatewayError):
    kind = ErrorKind.DELETE_FAILED


class StorageUnavailable(AppError):
    kind = ErrorKind.STORAGE_UNAVAILABLE
