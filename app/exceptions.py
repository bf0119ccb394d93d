"""
Exception hierarchy for the tracker stores.

Stores raise these; the application maps them to HTTP responses with an
``{"error": ...}`` body.
"""


class TrackerError(Exception):
    """Base exception for all errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TrackerError):
    """A required field was missing or empty."""

    status_code = 400


class AuthError(TrackerError):
    """The supplied owner key did not match the configured secret."""

    status_code = 401
