"""
Error types for the Snowflake query task.

Task-level failures derive from ExecuteQueryError. Driver failures are left
as snowflake.connector errors so callers in throw mode see them unchanged;
classify_error() maps any exception onto an ErrorKind when the task captures
it into a result instead.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import snowflake.connector.errors as sf_errors


class ErrorKind(str, Enum):
    """Categories of captured failures."""
    CONFIGURATION = "configuration"
    FILE_NOT_FOUND = "file_not_found"
    AUTHENTICATION = "authentication"
    UNSUPPORTED_MODE = "unsupported_mode"
    DRIVER = "driver"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


class ExecuteQueryError(Exception):
    """Base exception for task-level errors."""

    kind = ErrorKind.UNKNOWN

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.kind.value.upper()
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)


class ConfigurationError(ExecuteQueryError):
    """Connection string is missing, malformed or carries conflicting key material."""
    kind = ErrorKind.CONFIGURATION


class AuthenticationError(ExecuteQueryError):
    """Private key could not be decrypted with the supplied passphrase."""
    kind = ErrorKind.AUTHENTICATION


class UnsupportedModeError(ExecuteQueryError):
    """Command type is not one of non-query, reader or scalar."""
    kind = ErrorKind.UNSUPPORTED_MODE


class CancelledError(ExecuteQueryError):
    """Execution was cancelled by the caller while reading rows."""
    kind = ErrorKind.CANCELLED


def classify_error(error: BaseException) -> ErrorKind:
    """Map an exception raised during execution onto an ErrorKind."""
    if isinstance(error, ExecuteQueryError):
        return error.kind
    if isinstance(error, FileNotFoundError):
        return ErrorKind.FILE_NOT_FOUND
    if isinstance(error, sf_errors.Error):
        return ErrorKind.DRIVER
    return ErrorKind.UNKNOWN
