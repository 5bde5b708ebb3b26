"""Exceptions raised by the document uploader."""
from typing import Any, Optional


class UploaderError(Exception):
    """Base class for uploader errors."""


class ConfigurationError(UploaderError):
    """Raised when upload settings are inconsistent. Not retryable."""


class InvalidPathError(ConfigurationError):
    """Raised when the import root is blank or does not exist."""

    def __init__(self, path: Any, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path!r}")


class StoreError(UploaderError):
    """Raised when the document store rejects a request."""

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def innermost_message(error: BaseException) -> str:
    """
    Get the most specific message for an error.

    Follows ``__cause__`` chains down to the original exception, so a
    transport error wrapped by the store client is reported as-is.
    """
    current = error
    while current.__cause__ is not None:
        current = current.__cause__
    return str(current) or type(current).__name__
