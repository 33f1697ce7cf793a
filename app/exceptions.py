"""
CampusConnect — Domain error taxonomy.

Services raise these; ``app.main`` maps them onto HTTP responses with a
single exception handler and the real-time router maps them onto channel
events.
"""

from __future__ import annotations

from fastapi import status


class CampusConnectError(Exception):
    """Base class for every expected, user-facing failure."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(CampusConnectError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class NotFound(CampusConnectError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ValidationFailed(CampusConnectError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Conflict(CampusConnectError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"
