"""Entrypoint: python -m message_sync"""
from __future__ import annotations

import logging

import uvicorn

from message_sync.api.middleware.correlation_id import CorrelationIdFilter
from message_sync.config import settings


def main() -> None:
    handler = logging.StreamHandler()
    handler.addFilter(CorrelationIdFilter())
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s [%(correlation_id)s]: %(message)s",
        handlers=[handler],
    )
    uvicorn.run(
        "message_sync.app:create_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
