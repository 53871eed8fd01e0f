"""Request id propagation: inbound header -> context var -> log records and upstream calls."""
from __future__ import annotations

import logging
import uuid
from contextvars import ContextVar

import httpx
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

HEADER = "X-Request-ID"

correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_ctx.get() or "-"
        return True


async def forward_correlation_id(request: httpx.Request) -> None:
    """httpx request hook: tag calls to the messaging API with the current id."""
    cid = correlation_id_ctx.get()
    if cid is not None and HEADER not in request.headers:
        request.headers[HEADER] = cid


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        cid = request.headers.get(HEADER) or uuid.uuid4().hex
        token = correlation_id_ctx.set(cid)
        try:
            response = await call_next(request)
        finally:
            correlation_id_ctx.reset(token)
        response.headers[HEADER] = cid
        return response
