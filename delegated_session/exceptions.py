"""
Custom exceptions for session management.

Every controller operation catches failures at its own boundary and
normalizes them into one of these types (and a text message for the
session snapshot), so consumers see consistent error handling.
"""

from typing import Any


class SessionError(Exception):
    """Base exception for all session errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ClientCreationError(SessionError):
    """Raised when the identity client could not be created."""

    def __init__(self, message: str, cause: Exception | None = None):
        details = {}
        if cause:
            details["cause"] = type(cause).__name__
        super().__init__(message, details)
        self.cause = cause


class ClientNotReadyError(SessionError):
    """Raised when an operation needs the client handle before it exists."""

    def __init__(self, operation: str):
        super().__init__("Identity client not ready", {"operation": operation})
        self.operation = operation


class SessionCheckError(SessionError):
    """Raised when the current session could not be read from the client."""

    def __init__(self, message: str, cause: Exception | None = None):
        details = {}
        if cause:
            details["cause"] = type(cause).__name__
        super().__init__(message, details)
        self.cause = cause


class LoginError(SessionError):
    """Raised when the login handshake reports an error."""

    def __init__(self, message: str, identity_provider: str | None = None, cause: Any = None):
        details = {}
        if identity_provider:
            details["identity_provider"] = identity_provider
        super().__init__(message, details)
        self.identity_provider = identity_provider
        self.cause = cause


class LogoutError(SessionError):
    """Remote logout failed. Local state is cleared regardless."""

    def __init__(self, message: str, cause: Exception | None = None):
        details = {}
        if cause:
            details["cause"] = type(cause).__name__
        super().__init__(message, details)
        self.cause = cause


class SessionControllerMissingError(SessionError):
    """Raised when a session accessor is used without an active controller.

    This is a wiring error: the application was assembled incorrectly.
    """

    def __init__(self, reason: str = "no controller supplied"):
        super().__init__(
            f"SessionAccessor requires an active SessionController: {reason}",
            {"reason": reason},
        )
        self.reason = reason


class ConfigurationError(SessionError):
    """Raised when settings are malformed or a required value is missing."""

    def __init__(self, field: str, reason: str):
        super().__init__(f"Invalid configuration for {field}: {reason}", {"field": field})
        self.field = field
        self.reason = reason


def describe_error(error: Any) -> str:
    """Normalize an error of any shape into a human readable message.

    Handshake callbacks may report plain strings, exceptions, or objects
    carrying a ``message`` attribute.
    """
    if isinstance(error, str):
        return error
    message = getattr(error, "message", None)
    if isinstance(message, str) and message:
        return message
    text = str(error)
    if text:
        return text
    return type(error).__name__
