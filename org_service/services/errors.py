"""Service-level error taxonomy.

Services raise these; the API layer renders them as
``{"error": <message>}`` with ``status_code``.  Nothing below the API
imports FastAPI.
"""

from __future__ import annotations


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    status_code = 400


class UnauthenticatedError(ServiceError):
    status_code = 401


class ForbiddenError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class UpstreamError(ServiceError):
    """The authentication provider rejected a call.

    Carries the provider's own status and message; no status means the
    provider failed without one, which is reported as 500.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code or 500
