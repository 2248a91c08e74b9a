"""Domain exceptions.

Services raise these; a single handler in ``pennywise.main`` turns them into
HTTP responses carrying ``status_code`` and a human-readable ``detail``.
"""

from fastapi import status


class PennyWiseError(Exception):
    """Base exception for identity operations."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_response(self) -> dict:
        return {"detail": self.message}


class ValidationError(PennyWiseError):
    """Input rejected after schema validation (e.g. an email already taken)."""

    status_code = status.HTTP_422_UNPROCESSABLE_CONTENT

    def __init__(self, message: str, errors: dict[str, list[str]] | None = None):
        super().__init__(message)
        self.errors = errors or {}

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, {field: [message]})

    def to_response(self) -> dict:
        return {"detail": self.message, "errors": self.errors}


class AuthenticationError(PennyWiseError):
    """Wrong credentials, bad OTP, or failed OAuth exchange."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(PennyWiseError):
    """Authenticated, but not allowed to touch the resource."""

    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(PennyWiseError):
    """Entity not found in database."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity_type: str, identifier: str | int):
        self.entity_type = entity_type
        self.identifier = identifier
        super().__init__(f"{entity_type} not found")


class BusinessRuleError(PennyWiseError):
    """Request is well-formed but not allowed in the current state."""

    status_code = status.HTTP_400_BAD_REQUEST


class ExternalServiceError(PennyWiseError):
    """An upstream dependency (mail provider, OAuth provider) failed.

    ``message`` is safe to show to clients; upstream detail goes to the log only.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
