"""Exceptions raised by the upstream API client and the workflow layer."""

from typing import Optional


class SpecApiError(Exception):
    """Base error carrying a human-readable message and the upstream status, if any."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        return self.message


class AuthenticationError(SpecApiError):
    """Bad credentials or an invalid/expired token."""


class SessionExpiredError(AuthenticationError):
    """Token refresh failed; the session was cleared."""

    def __init__(self, message: str = "Sessão expirada. Faça login novamente."):
        super().__init__(message, status_code=401)


class AuthorizationError(SpecApiError):
    """The backend answered 403."""


class NotFoundError(SpecApiError):
    """The backend answered 404."""


class ApiValidationError(SpecApiError):
    """Malformed payload (backend 400) or a local validation failure."""


class ConflictError(SpecApiError):
    """The operation conflicts with existing state (duplicate name, already-resolved material)."""


class NetworkError(SpecApiError):
    """Transport failure or any other non-2xx response."""


class RequestCancelledError(SpecApiError):
    """The caller's cancel token fired before the operation finished."""


def error_for_status(status_code: int, message: str) -> SpecApiError:
    """Map an upstream HTTP status to the matching exception instance."""
    if status_code == 401:
        return AuthenticationError(message, status_code)
    if status_code == 403:
        return AuthorizationError(message, status_code)
    if status_code == 404:
        return NotFoundError(message, status_code)
    if status_code == 400:
        return ApiValidationError(message, status_code)
    return NetworkError(message, status_code)
