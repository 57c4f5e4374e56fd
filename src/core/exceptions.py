"""Application exception taxonomy.

Every failure a detection request can end in is one of the classes below.
Each carries a stable ``kind``, an HTTP status and a short client-safe
message; internal detail goes into ``details`` and is only ever logged.
"""
from enum import Enum

from fastapi import status


class ValidationErrorKind(str, Enum):
    TOO_SHORT = "TooShort"
    TOO_LONG = "TooLong"
    TOO_LARGE = "TooLarge"
    EMPTY = "Empty"
    UNSUPPORTED_TYPE = "UnsupportedType"


class InvocationErrorKind(str, Enum):
    TIMEOUT = "Timeout"
    CAPABILITY_UNAVAILABLE = "CapabilityUnavailable"
    MALFORMED_RESPONSE = "MalformedResponse"


class AppError(Exception):
    """Base class for all application-level exceptions."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "APP_ERROR"
    kind = "AppError"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


_VALIDATION_STATUS = {
    ValidationErrorKind.TOO_SHORT: 422,
    ValidationErrorKind.TOO_LONG: 422,
    ValidationErrorKind.EMPTY: 422,
    ValidationErrorKind.TOO_LARGE: 413,
    ValidationErrorKind.UNSUPPORTED_TYPE: 415,
}

_INVOCATION_STATUS = {
    InvocationErrorKind.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
    InvocationErrorKind.CAPABILITY_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    InvocationErrorKind.MALFORMED_RESPONSE: status.HTTP_502_BAD_GATEWAY,
}

_INVOCATION_MESSAGES = {
    InvocationErrorKind.TIMEOUT: "Detection model did not respond in time",
    InvocationErrorKind.CAPABILITY_UNAVAILABLE: "Detection model is unavailable",
    InvocationErrorKind.MALFORMED_RESPONSE: "Detection model returned an unusable response",
}


class ContentValidationError(AppError):
    """Raised when submitted content fails structural validation."""
    code = "VALIDATION_ERROR"

    def __init__(self, kind: ValidationErrorKind, message: str, details: dict | None = None):
        super().__init__(message, details)
        self.kind = kind
        self.status_code = _VALIDATION_STATUS[kind]


class RateLimitedError(AppError):
    """Raised when a client exhausted its request budget."""
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMITED"
    kind = "RateLimited"

    def __init__(self, retry_after_seconds: int, details: dict | None = None):
        super().__init__(
            f"Too many requests, retry in {retry_after_seconds} seconds",
            details,
        )
        self.retry_after_seconds = retry_after_seconds


class InvocationError(AppError):
    """Raised when an inference capability call fails.

    The client-facing message is fixed per kind. Whatever the capability
    reported is kept in ``details`` for the logs.
    """
    code = "INVOCATION_ERROR"

    def __init__(self, kind: InvocationErrorKind, details: dict | None = None):
        super().__init__(_INVOCATION_MESSAGES[kind], details)
        self.kind = kind
        self.status_code = _INVOCATION_STATUS[kind]


class ClientDisconnectedError(AppError):
    """Raised when the client went away before the result was ready."""
    status_code = 499
    code = "CLIENT_DISCONNECTED"
    kind = "ClientDisconnected"

    def __init__(self) -> None:
        super().__init__("Client disconnected")
