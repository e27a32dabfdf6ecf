"""Request context middleware.

Every request gets an id, taken from the ``X-Request-ID`` header when the
caller sent one and generated otherwise.  The id lives in a ContextVar so
any log line emitted while the request is being served carries it, no
matter which module logs; a logging filter on the root logger copies it
onto each LogRecord.  ContextVars are per-task, so concurrent requests on
the same event loop never see each other's ids.

The authenticated user and organization are published the same way by
the identity dependency and the organization routes (``user_id_var`` and
``org_id_var``), which lets the JSON formatter attach them to warnings
raised deep inside the services.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
org_id_var: ContextVar[str | None] = ContextVar("org_id", default=None)


class _RequestContextFilter(logging.Filter):
    """Copy the request context vars onto every LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        if getattr(record, "user_id", None) is None:
            record.user_id = user_id_var.get(None)  # type: ignore[attr-defined]
        if getattr(record, "org_id", None) is None:
            record.org_id = org_id_var.get(None)  # type: ignore[attr-defined]
        return True


def _install_filter() -> None:
    # Filters on the root logger do not run for records propagated from
    # child loggers, so the filter goes on each root handler instead.
    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        if not any(isinstance(f, _RequestContextFilter) for f in handler.filters):
            handler.addFilter(_RequestContextFilter())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request id, time the request and log one summary line."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        _install_filter()

        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(req_id)
        user_id_var.set(None)
        org_id_var.set(None)

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        logger.info(
            "%s %s -> %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "request_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers["X-Request-ID"] = req_id
        return response
