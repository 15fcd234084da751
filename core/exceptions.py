"""
Application error model.

Every failure the services and the authorization gate report is an AppError
tagged with an ErrorKind. The kind decides the HTTP status and the machine
readable code; the boundary translator in core.error_handlers renders it.
"""

from enum import Enum
from typing import Dict, List, Optional


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION_ERROR"
    AUTHENTICATION = "AUTHENTICATION_ERROR"
    AUTHORIZATION = "AUTHORIZATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RATE_LIMIT = "RATE_LIMIT_EXCEEDED"
    INTERNAL = "INTERNAL_ERROR"

    @property
    def code(self) -> str:
        return self.value

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]

    @property
    def default_message(self) -> str:
        return _DEFAULT_MESSAGES[self]


_STATUS_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.RATE_LIMIT: 429,
    ErrorKind.INTERNAL: 500,
}

_DEFAULT_MESSAGES = {
    ErrorKind.VALIDATION: "Validation failed",
    ErrorKind.AUTHENTICATION: "Authentication required",
    ErrorKind.AUTHORIZATION: "Access denied",
    ErrorKind.NOT_FOUND: "Resource not found",
    ErrorKind.CONFLICT: "Resource already exists",
    ErrorKind.RATE_LIMIT: "Too many requests",
    ErrorKind.INTERNAL: "Internal server error",
}


class AppError(Exception):
    """
    A failure with a kind and a client-safe message.

    Args:
        kind: What went wrong (decides status code and error code)
        message: Message shown to the client (defaults per kind)
        errors: Optional field -> messages mapping for validation failures
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        errors: Optional[Dict[str, List[str]]] = None,
    ):
        self.kind = kind
        self.message = message or kind.default_message
        self.errors = errors
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def __repr__(self) -> str:
        return f"AppError({self.kind.name}, {self.message!r})"


def not_found(resource: str = "Resource") -> AppError:
    return AppError(ErrorKind.NOT_FOUND, f"{resource} not found")
