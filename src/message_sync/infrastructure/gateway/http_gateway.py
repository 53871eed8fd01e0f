"""httpx-backed implementation of application.ports.gateway.MessageGateway."""
from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from message_sync.application.dto.remote_message import RemoteMessage
from message_sync.application.exceptions import (
    DeleteFailed,
    FetchFailed,
    GatewayError,
    SendFailed,
)
from message_sync.infrastructure.gateway.mappers import payload_to_dto
from message_sync.infrastructure.gateway.schemas import (
    ErrorResponse,
    MessageListResponse,
    RemoteMessagePayload,
    SendMessageResponse,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

RequestHook = Callable[[httpx.Request], Awaitable[None]]


def build_http_client(
    base_url: str,
    api_key: str,
    timeout: float,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    request_hooks: Sequence[RequestHook] = (),
) -> httpx.AsyncClient:
    """Client carrying the bearer credential; the engine never sees it."""
    return httpx.AsyncClient(
        base_url=base_url,
        headers={"Authorization": f"Bearer {api_key}"},
        timeout=timeout,
        transport=transport,
        event_hooks={"request": list(request_hooks)},
    )


class HttpMessageGateway:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def fetch_messages(self, conversation_id: str, limit: int) -> list[RemoteMessage]:
        response = await self._request(
            FetchFailed, "GET", f"/contacts/{conversation_id}/messages", params={"limit": limit},
        )
        page = self._parse(FetchFailed, response, MessageListResponse)
        return [payload_to_dto(m) for m in page.messages]

    async def send_message(self, conversation_id: str, text: str) -> RemoteMessage:
        response = await self._request(
            SendFailed, "POST", f"/contacts/{conversation_id}/conversation/note", json={"text": text},
        )
        parsed = self._parse(SendFailed, response, SendMessageResponse)
        if parsed.message is not None:
            return payload_to_dto(parsed.message)
        if parsed.uuid:
            return payload_to_dto(RemoteMessagePayload(id=parsed.uuid, text=text))
        raise SendFailed(
            "Send response did not include a message identity",
            status_code=response.status_code,
            body=response.text,
        )

    async def delete_message(self, message_id: str) -> None:
        await self._request(DeleteFailed, "DELETE", f"/messages/{message_id}")

    async def _request(
        self,
        error: type[GatewayError],
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            logger.error("API request timed out: %s %s", method, url)
            raise error("API request timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("API request error: %s %s: %s", method, url, exc)
            raise error(f"API request error: {exc}") from exc

        if response.is_success:
            return response

        logger.error("Error response from API: %s %s -> %d %s", method, url, response.status_code, response.text)
        raise error(
            self._error_detail(response),
            status_code=response.status_code,
            body=response.text,
        )

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        fallback = f"API request failed with status {response.status_code}"
        try:
            detail = ErrorResponse.model_validate(response.json()).message
        except (ValueError, PydanticValidationError):
            return fallback
        return detail or fallback

    @staticmethod
    def _parse(error: type[GatewayError], response: httpx.Response, model: type[M]) -> M:
        try:
            return model.model_validate(response.json())
        except (ValueError, PydanticValidationError) as exc:
            raise error(
                "Malformed response from API",
                status_code=response.status_code,
                body=response.text,
            ) from exc
