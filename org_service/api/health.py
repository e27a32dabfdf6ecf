"""Health and readiness endpoints.

  /health (liveness):  the process answers.  Always 200; the body says
                       whether dependencies are ok or degraded.
  /ready (readiness):  this instance can serve traffic.  503 when a
                       configured database does not answer, so the load
                       balancer stops routing here without a restart.

Without DATABASE_URL the service runs on in-memory repositories and is
always ready.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from org_service.db import engine as db_engine

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    checks: dict[str, str] = {}
    overall = "ok"

    if db_engine.engine is None:
        checks["database"] = "not_configured"
    elif await db_engine.ping():
        checks["database"] = "ok"
    else:
        checks["database"] = "degraded"
        overall = "degraded"

    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready() -> JSONResponse:
    if db_engine.engine is not None and not await db_engine.ping():
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return JSONResponse(status_code=200, content={"status": "ready"})
