"""
Health check endpoint.

GET /health — checks MongoDB connectivity and mail configuration.
Rules:
- MongoDB failure → "unhealthy" (503) — the app cannot function without it.
- Mail provider not configured → "degraded" (200) — accounts still work, but
  OTP and reset mails are not delivered.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request) -> JSONResponse:
    checks: dict[str, str] = {}
    overall = "healthy"

    try:
        db = request.app.state.db
        await db.client.admin.command("ping")
        checks["mongodb"] = "ok"
    except Exception:
        checks["mongodb"] = "error"
        overall = "unhealthy"

    settings = getattr(request.app.state, "settings", None)
    if settings is not None and not settings.email.zepto_api_token:
        checks["email"] = "not_configured"
        if overall == "healthy":
            overall = "degraded"
    else:
        checks["email"] = "ok"

    status_code = 503 if overall == "unhealthy" else 200
    return JSONResponse(
        status_code=status_code,
        content={"status": overall, "checks": checks},
    )
