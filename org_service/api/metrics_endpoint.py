"""Prometheus metrics endpoint.

Scraped by Prometheus; returns the text exposition format, not JSON.
Request metrics plus ``authz_decisions_total`` (gate, allow/deny) and
``org_lifecycle_events_total`` (organization, member, plan and
subscription changes).
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Expose all Prometheus metrics in text exposition format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
