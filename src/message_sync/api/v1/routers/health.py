from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    """Ready when the message store answers and the API client is open.

    The messaging API itself is not probed; its failures surface per request.
    """
    checks: dict[str, str] = {}
    try:
        await request.app.state.redis.ping()
        checks["store"] = "ok"
    except RedisError as exc:
        checks["store"] = f"error: {exc}"

    checks["gateway"] = "closed" if request.app.state.http.is_closed else "ok"

    ready = all(v == "ok" for v in checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "unavailable", "checks": checks},
    )
