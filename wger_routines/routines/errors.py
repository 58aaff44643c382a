"""Error types for routine composition.

Every error carries a stable ``code`` so the tool boundary can report it in
MCP form without inspecting the exception type.
"""

from typing import Any


class RoutineError(Exception):
    """Base class for errors surfaced to the tool boundary."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, details: Any = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


class AuthenticationError(RoutineError):
    """No credentials configured, or the remote store rejected them."""

    code = "AUTHENTICATION_REQUIRED"


class ValidationError(RoutineError):
    """Input failed schema constraints. Raised before any network call."""

    code = "INVALID_INPUT"


class RemoteError(RoutineError):
    """Any failure talking to the remote store (status, network, decoding)."""

    code = "REMOTE_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        method: str | None = None,
        path: str | None = None,
        details: Any = None,
    ):
        self.status_code = status_code
        self.method = method
        self.path = path
        super().__init__(message, details=details)


class NotFoundError(RemoteError):
    code = "NOT_FOUND"


class DecodeError(RemoteError):
    """A remote payload did not match the expected entity schema."""

    code = "DECODE_ERROR"


def get_user_friendly_message(error: BaseException) -> str:
    """Translate an exception into a message suitable for the assistant."""
    if isinstance(error, AuthenticationError):
        return (
            f"{error.message} Set WGER_API_KEY, or WGER_USERNAME and WGER_PASSWORD, "
            "in the environment."
        )
    if isinstance(error, ValidationError):
        return f"Invalid input: {error.message}"
    if isinstance(error, NotFoundError):
        return f"Not found: {error.message}"
    if isinstance(error, DecodeError):
        return f"Unexpected response from wger: {error.message}"
    if isinstance(error, RemoteError):
        if error.status_code is not None:
            return f"wger API error (HTTP {error.status_code}): {error.message}"
        return f"wger API error: {error.message}"
    if isinstance(error, RoutineError):
        return error.message
    return f"Unexpected error: {error!s}"
