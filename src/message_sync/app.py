from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from message_sync.api.middleware.correlation_id import CorrelationIdMiddleware, forward_correlation_id
from message_sync.api.middleware.metrics import RequestTimingMiddleware
from message_sync.api.v1.routers import health, messages
from message_sync.application.exceptions import (
    ConflictError,
    GatewayError,
    NotFoundError,
    SendFailed,
    StorageUnavailable,
    ValidationError,
)
from message_sync.config import settings
from message_sync.infrastructure.gateway.http_gateway import HttpMessageGateway, build_http_client
from message_sync.infrastructure.store.redis_store import RedisMessageStore
from message_sync.services.reconciliation_engine import ReconciliationEngine

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    app.state.redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    app.state.http = build_http_client(
        settings.MESSAGING_API_URL,
        settings.MESSAGING_API_KEY,
        settings.GATEWAY_TIMEOUT_SECONDS,
        request_hooks=[forward_correlation_id],
    )
    app.state.engine = ReconciliationEngine(
        HttpMessageGateway(app.state.http),
        RedisMessageStore(app.state.redis, key_prefix=settings.STORE_KEY_PREFIX),
        page_size=settings.MESSAGES_PAGE_SIZE,
        gateway_timeout=settings.GATEWAY_TIMEOUT_SECONDS,
    )
    logger.info("Reconciliation engine ready (api=%s)", settings.MESSAGING_API_URL)

    yield

    await app.state.engine.close()
    await app.state.http.aclose()
    await app.state.redis.aclose()
    logger.info("HTTP client and Redis connection pool closed")


def create_app() -> FastAPI:
    app = FastAPI(
        title="Message Sync",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(messages.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ConflictError)
    async def _conflict(_req: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})

    @app.exception_handler(GatewayError)
    async def _gateway(_req: Request, exc: GatewayError) -> JSONResponse:
        content: dict[str, object] = {
            "detail": exc.detail,
            "error": exc.kind,
            "upstream_status": exc.status_code,
        }
        if isinstance(exc, SendFailed) and exc.message is not None:
            content["message_id"] = exc.message.id
        return JSONResponse(status_code=502, content=content)

    @app.exception_handler(StorageUnavailable)
    async def _storage(_req: Request, exc: StorageUnavailable) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": exc.detail, "error": exc.kind})
