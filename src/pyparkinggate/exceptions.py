"""Library exceptions."""

from __future__ import annotations


class PyParkingGateError(Exception):
    """Base exception for the library."""


class ValidationError(PyParkingGateError):
    """Raised when local inputs fail validation."""


class PreconditionFailedError(PyParkingGateError):
    """Raised when a workflow action is attempted from an invalid state."""


class InactiveSubscriptionError(PyParkingGateError):
    """Raised when a subscription exists but is not active."""


class NetworkError(PyParkingGateError):
    """Raised when network communication fails."""

    def __init__(self, message: str, *, status: int = 0) -> None:
        super().__init__(message)
        self.status = status


class RemoteError(PyParkingGateError):
    """Raised when the remote authority rejects a request or returns invalid data."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        errors: object | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.errors = errors


class AuthError(RemoteError):
    """Raised when authentication fails."""


class NotFoundError(RemoteError):
    """Raised when the remote authority has no such entity."""

    def __init__(
        self,
        message: str,
        *,
        status: int | None = 404,
        errors: object | None = None,
    ) -> None:
        super().__init__(message, status=status, errors=errors)
