from __future__ import annotations


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class OpenSessionExistsError(ValidationError):
    """Raised when a user already has an attendance session without check-out."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist."""


class BackendError(DomainError):
    """Raised when the database or another backing service fails."""


class InvalidStateError(DomainError):
    """Raised when an operation is not allowed in the current session state."""


class OperationInProgressError(InvalidStateError):
    """Raised when a check-in or check-out is already running for the user."""


class OperationTimeoutError(DomainError):
    """Raised when an operation did not finish in time.

    The write may still have completed on the server, so callers must present
    this as an ambiguous outcome rather than a failure.
    """


class GeolocationError(DomainError):
    def __init__(self, code: int, message: str = ""):
        super().__init__(message or f"Geolocation error {code}")
        self.code = int(code)


class SessionAlreadyClosedError(InvalidStateError):
    """Raised when a check-out targets a session that already has a check-out."""
